"""In-memory stand-ins for the incident store, alerts and probes."""

from __future__ import annotations

import asyncio

from otto.alerts.base import Alert
from otto.alerts.exceptions import DeliveryError
from otto.alerts.fanout import AlertGroups
from otto.core.config import AlertConfig, ProbeConfig
from otto.core.store import IncidentStore
from otto.core.types import LatchState, Notification
from otto.monitor.metrics import Metrics
from otto.probes.base import Probe


class MemoryStore(IncidentStore):
    """Dict-backed incident store that records every write."""

    def __init__(self) -> None:
        self.states: dict[str, LatchState] = {}
        self.writes: list[tuple[str, LatchState]] = []
        self.flushes = 0
        self.closed = False

    async def get(self, slug: str) -> LatchState | None:
        return self.states.get(slug)

    async def set(self, slug: str, state: LatchState) -> None:
        self.states[slug] = state
        self.writes.append((slug, state))

    async def flush(self) -> None:
        self.flushes += 1

    async def close(self) -> None:
        self.closed = True


class RecordingAlert(Alert):
    """Alert that records deliveries or fails on demand."""

    kind = "recording"

    def __init__(
        self,
        namepass: list[str] | None = None,
        fail: bool = False,
        metrics: Metrics | None = None,
        label: str = "memory",
    ) -> None:
        super().__init__(AlertConfig(namepass=namepass), metrics)
        self.fail = fail
        self.label = label
        self.received: list[Notification] = []
        self.closed = False

    @property
    def target(self) -> str:
        return self.label

    async def notify(self, notification: Notification) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise DeliveryError("sink down")
        self.received.append(notification)

    async def close(self) -> None:
        self.closed = True
        await super().close()


class ScriptedProbe(Probe):
    """Probe whose check outcomes come from a script.

    Each entry is ``True`` (incident), ``False`` (clean) or an exception to
    raise. Once the script runs out, checks are clean. ``hold`` makes
    ``observe`` block until released, to test in-flight behaviour.
    """

    kind = "scripted"

    def __init__(
        self,
        outcomes: list[bool | Exception] | None = None,
        name: str | None = None,
        schedule: str | None = None,
        notify_recovery: bool = False,
        metrics: Metrics | None = None,
        hold: asyncio.Event | None = None,
    ) -> None:
        super().__init__(
            ProbeConfig(name=name, schedule=schedule, notify_recovery=notify_recovery),
            metrics,
        )
        self.outcomes = list(outcomes or [])
        self.hold = hold
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.started = asyncio.Event()
        self.finished = 0

    @property
    def identity(self) -> str:
        return f"scripted-{self._config.name or ''}"

    @property
    def check(self) -> str:
        return "scripted check"

    async def observe(self, store: IncidentStore, alerts: AlertGroups) -> None:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            if self.hold is not None:
                await self.hold.wait()
            outcome = self.outcomes.pop(0) if self.outcomes else False
            if isinstance(outcome, Exception):
                raise outcome
            incident = self.incident(title="scripted failure", message="boom") if outcome else None
            await self.record_outcome(store, alerts, incident)
        finally:
            self.active -= 1
            self.finished += 1
