"""Scheduler — one generation of independent, cron-driven probe loops."""

from __future__ import annotations

import asyncio
import datetime

import structlog

from otto.core.exceptions import ScheduleError
from otto.core.store import IncidentStore
from otto.core.cron import CronSchedule, effective_schedule
from otto.engine.registry import Registry
from otto.probes.base import Probe

logger = structlog.get_logger(__name__)


class Scheduler:
    """Runs one asyncio task per registered probe until cancelled.

    Each loop waits for the earlier of its next cron fire time or the
    generation's cancellation event. On a timer wake it awaits
    ``probe.observe()`` to completion before computing the next fire time, so
    checks of one probe never overlap. Cancellation is only noticed while
    waiting; an in-flight check always finishes.

    Usage::

        scheduler = Scheduler(registry, store, default_schedule="0 * * * * *")
        await scheduler.start()
        # ...
        drained = await scheduler.stop(grace_secs=10)
    """

    def __init__(
        self,
        registry: Registry,
        store: IncidentStore,
        default_schedule: str,
        generation: int = 1,
    ) -> None:
        self._registry = registry
        self._store = store
        self._default_schedule = default_schedule
        self._generation = generation
        self._cancel = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def running(self) -> bool:
        """Whether any probe loop is still alive."""
        return any(not task.done() for task in self._tasks)

    async def start(self) -> None:
        """Spawn a loop for every probe in the registry."""
        if self._tasks or self._cancel.is_set():
            return
        for kind, probe in self._registry.iter_probes():
            task = asyncio.create_task(
                self._run_probe(kind, probe),
                name=f"probe:{self._generation}:{probe.name}",
            )
            self._tasks.append(task)
        logger.info(
            "scheduler_started",
            generation=self._generation,
            probes=len(self._tasks),
            alerts=self._registry.alert_count,
        )

    async def stop(self, grace_secs: float) -> bool:
        """Signal every loop to stop and wait up to *grace_secs* for them.

        Returns True if all loops exited within the grace period. Loops still
        inside ``observe()`` are left to finish on their own.
        """
        self._cancel.set()
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            _, pending_set = await asyncio.wait(pending, timeout=grace_secs)
            if pending_set:
                logger.warning(
                    "scheduler_drain_timeout",
                    generation=self._generation,
                    pending=sorted(task.get_name() for task in pending_set),
                    grace_secs=grace_secs,
                )
                return False
        logger.info("scheduler_stopped", generation=self._generation)
        return True

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait until every loop has exited, or until *timeout* seconds pass.

        Returns True if no loop is left running. Loops are never cancelled here.
        """
        pending = [task for task in self._tasks if not task.done()]
        if not pending:
            return True
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        return not still_pending

    async def abort(self) -> None:
        """Hard-cancel loops that outlived ``stop()`` (process exit only)."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("scheduler_aborted", generation=self._generation, tasks=len(pending))

    # ── Per-probe loop ──────────────────────────────────────────

    async def _wait_for_cancel(self, delay: float) -> bool:
        """Sleep up to *delay* seconds; True if cancellation arrived first."""
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def _run_probe(self, kind: str, probe: Probe) -> None:
        expression = effective_schedule(probe.local_schedule(), self._default_schedule)
        try:
            cron = CronSchedule(expression)
        except ScheduleError:
            logger.exception("schedule_invalid", probe=probe.name, schedule=expression)
            return

        log = logger.bind(probe=probe.name, generation=self._generation)
        log.info("probe_loop_started", schedule=expression)

        last_fire: datetime.datetime | None = None
        while not self._cancel.is_set():
            now = datetime.datetime.now(datetime.UTC)
            # Never fire the same occurrence twice if the timer woke early.
            start = max(now, last_fire) if last_fire is not None else now
            fire_at = cron.next_fire(start)
            delay = max((fire_at - now).total_seconds(), 0.0)

            if await self._wait_for_cancel(delay):
                break
            last_fire = fire_at

            probe.metrics.probe_run(kind, probe.name)
            try:
                await probe.observe(self._store, self._registry.alerts)
            except Exception:
                probe.metrics.probe_error(kind, probe.name)
                log.exception("probe_observe_error")

        log.info("probe_loop_stopped")
