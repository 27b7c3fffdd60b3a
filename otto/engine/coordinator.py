"""Reload / shutdown coordinator — owns the lifecycle of scheduler generations."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import structlog
from aiohttp import web

from otto.core.config import Settings, load_settings
from otto.core.exceptions import StoreError
from otto.core.logging import setup_logging
from otto.core.store import IncidentStore
from otto.engine.registry import Registry, build_registry
from otto.engine.scheduler import Scheduler
from otto.monitor.metrics import Metrics
from otto.monitor.web import start_metrics_server

logger = structlog.get_logger(__name__)


class Coordinator:
    """Starts, reloads and stops scheduler generations.

    - SIGHUP → ``reload()``: stop the current generation (bounded grace),
      flush the store, re-read the config file, rebuild the registry and
      start a new generation.
    - SIGINT / SIGTERM → ``shutdown()``: stop the generation, flush and close
      the store, then let ``run()`` return.

    If the config file cannot be re-read or the registry cannot be rebuilt,
    the previous registry is started again as a new generation and the agent
    keeps running; the next SIGHUP retries. When a check of the previous
    generation is still stuck, fresh instances are built from the last good
    settings instead, and the stuck generation is cancelled at shutdown.
    """

    def __init__(
        self,
        config_path: str | Path,
        settings: Settings,
        store: IncidentStore,
        metrics: Metrics | None = None,
        log_level: str | None = None,
        log_format: str | None = None,
    ) -> None:
        self._config_path = Path(config_path)
        self._settings = settings
        self._store = store
        self._metrics = metrics or Metrics()
        self._log_level = log_level
        self._log_format = log_format
        self._scheduler: Scheduler | None = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._stop_requested = asyncio.Event()
        self._background: set[asyncio.Task[object]] = set()
        self._retired: list[Scheduler] = []
        self._metrics_runner: web.AppRunner | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def scheduler(self) -> Scheduler | None:
        return self._scheduler

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        """Build the registry from the current settings and start generation 1."""
        async with self._lock:
            if self._scheduler is not None:
                return
            await self._spawn(build_registry(self._settings, self._metrics))

    async def reload(self) -> bool:
        """Swap in a new generation built from the re-read config file.

        Returns True if the new configuration was applied.
        """
        async with self._lock:
            if self._stop_requested.is_set() or self._scheduler is None:
                return False

            old = self._scheduler
            logger.info("reload_started", config=str(self._config_path), generation=old.generation)
            drained = await old.stop(self._settings.scheduler.grace_secs)
            await self._flush()

            try:
                settings = load_settings(self._config_path)
                registry = build_registry(settings, self._metrics)
            except Exception:
                logger.exception("reload_failed", config=str(self._config_path))
                fallback = await self._fallback_registry(old, drained)
                if fallback is None:
                    return False
                if fallback is not old.registry:
                    self._retire(old, drained=False)
                await self._spawn(fallback)
                return False

            self._settings = settings
            setup_logging(settings.logging, level=self._log_level, fmt=self._log_format)
            self._retire(old, drained)
            await self._spawn(registry)
            logger.info("reload_finished", generation=self._generation)
            return True

    async def shutdown(self) -> None:
        """Stop the current generation and release the store."""
        if self._stop_requested.is_set():
            return
        self._stop_requested.set()
        async with self._lock:
            logger.info("shutdown_started")
            if self._scheduler is not None:
                drained = await self._scheduler.stop(self._settings.scheduler.grace_secs)
                if not drained:
                    await self._scheduler.abort()
                await self._scheduler.registry.close()
            for retired in list(self._retired):
                await retired.abort()
            if self._background:
                await asyncio.gather(*self._background, return_exceptions=True)
            await self._flush()
            try:
                await self._store.close()
            except StoreError:
                logger.exception("store_close_error")
            if self._metrics_runner is not None:
                await self._metrics_runner.cleanup()
                self._metrics_runner = None
            logger.info("shutdown_finished")
        self._stopped.set()

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    # ── Signal entry points ─────────────────────────────────────

    def request_reload(self) -> None:
        logger.info("reload_signal_received")
        self._track(asyncio.create_task(self.reload()))

    def request_shutdown(self) -> None:
        logger.info("shutdown_signal_received")
        self._track(asyncio.create_task(self.shutdown()))

    async def run(self) -> int:
        """Start everything and serve until a shutdown signal arrives."""
        loop = asyncio.get_running_loop()
        handlers = {
            signal.SIGHUP: self.request_reload,
            signal.SIGINT: self.request_shutdown,
            signal.SIGTERM: self.request_shutdown,
        }
        installed: list[signal.Signals] = []
        for sig, handler in handlers.items():
            try:
                loop.add_signal_handler(sig, handler)
                installed.append(sig)
            except NotImplementedError:
                # Windows: signal handlers not supported on ProactorEventLoop
                pass

        try:
            if self._settings.prometheus is not None:
                self._metrics_runner = await start_metrics_server(
                    self._metrics, self._settings.prometheus
                )

            await self.start()
            logger.info("agent_running", config=str(self._config_path), generation=self._generation)
            await self.wait_stopped()
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
        return 0

    # ── Internals ───────────────────────────────────────────────

    async def _spawn(self, registry: Registry) -> None:
        self._generation += 1
        self._scheduler = Scheduler(
            registry,
            self._store,
            self._settings.schedule,
            generation=self._generation,
        )
        await self._scheduler.start()

    async def _fallback_registry(self, old: Scheduler, drained: bool) -> Registry | None:
        """Pick the registry that replaces *old* after a failed reload.

        The old probe instances are reused once all of their loops have exited,
        so restarted loops never overlap an in-flight check. If a check is
        still running after another grace period, fresh instances are built
        from the current settings instead. Returns None if shutdown began
        while waiting.
        """
        if drained or await old.wait_closed(self._settings.scheduler.grace_secs):
            return old.registry
        try:
            registry = build_registry(self._settings, self._metrics)
        except Exception:
            logger.exception("reload_fallback_failed", generation=old.generation)
            if await self._wait_closed_or_stopped(old):
                return old.registry
            return None
        logger.warning("reload_fallback_rebuilt", generation=old.generation)
        return registry

    async def _wait_closed_or_stopped(self, scheduler: Scheduler) -> bool:
        """Wait for *scheduler* to exit; False if shutdown was requested first."""
        closed = asyncio.create_task(scheduler.wait_closed())
        stopped = asyncio.create_task(self._stop_requested.wait())
        try:
            done, _ = await asyncio.wait({closed, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            stopped.cancel()
        return closed in done

    async def _flush(self) -> None:
        try:
            await self._store.flush()
        except StoreError:
            logger.exception("store_flush_error")

    def _retire(self, old: Scheduler, drained: bool) -> None:
        """Close the old registry once its loops are gone."""

        async def _close_when_done() -> None:
            await old.wait_closed()
            self._retired.remove(old)
            await old.registry.close()

        if drained:
            self._track(asyncio.create_task(old.registry.close()))
        else:
            self._retired.append(old)
            self._track(asyncio.create_task(_close_when_done()))

    def _track(self, task: asyncio.Task[object]) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
