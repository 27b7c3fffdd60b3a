"""Command probe — a non-zero exit status is an incident."""

from __future__ import annotations

import asyncio

import structlog

from otto.alerts.fanout import AlertGroups
from otto.core.config import ExecProbeConfig
from otto.core.store import IncidentStore
from otto.monitor.metrics import Metrics
from otto.probes.base import Probe
from otto.probes.exceptions import CheckError

logger = structlog.get_logger(__name__)


class ExecProbe(Probe):
    """Runs ``cmd`` with ``args`` and watches its exit status."""

    kind = "exec"

    def __init__(self, config: ExecProbeConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._exec = config

    @property
    def identity(self) -> str:
        return f"exec-{self._exec.cmd}-{'-'.join(self._exec.args)}"

    @property
    def check(self) -> str:
        return f"command `{self._exec.cmd}` with args `{self._exec.args}`"

    async def run_command(self) -> tuple[int, str]:
        """Run the command and return ``(exit_status, stderr)``."""
        try:
            proc = await asyncio.create_subprocess_exec(
                self._exec.cmd,
                *self._exec.args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CheckError(
                f"failed executing command {self._exec.cmd} with args {self._exec.args}: {exc}"
            ) from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._exec.timeout_secs)
        except TimeoutError as exc:
            await self._kill(proc)
            raise CheckError(
                f"command {self._exec.cmd} timed out after {self._exec.timeout_secs}s"
            ) from exc
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        status = await proc.wait()
        return status, stderr.decode("utf-8", errors="replace")

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        """Kill the child if it is still running and reap it."""
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()

    async def observe(self, store: IncidentStore, alerts: AlertGroups) -> None:
        logger.info("exec_probe_running", cmd=self._exec.cmd, args=self._exec.args)
        status, stderr = await self.run_command()

        if status == 0:
            await self.record_outcome(store, alerts, None)
            return

        await self.record_outcome(
            store,
            alerts,
            self.incident(
                title=f"`{self._exec.cmd}` `{self._exec.args}` got code {status}",
                message=f"exit status {status}: {stderr}",
            ),
        )
