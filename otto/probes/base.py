"""Abstract base probe — identity, latch bookkeeping, notification fanout."""

from __future__ import annotations

import abc
import hashlib
import re
import unicodedata
from typing import ClassVar

import structlog

from otto.alerts.fanout import AlertGroups, notify_all
from otto.core.config import ProbeConfig
from otto.core.store import IncidentStore
from otto.core.types import LatchState, Notification
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII words joined by single dashes."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG.sub("-", ascii_text.lower()).strip("-")


def make_slug(identity: str) -> str:
    """Readable slug plus a short digest of the raw identity.

    Identities that differ only in punctuation or case slugify to the same
    text; the digest keeps their keys apart.
    """
    digest = hashlib.blake2b(identity.encode("utf-8"), digest_size=4).hexdigest()
    return f"{slugify(identity)}-{digest}"


class Probe(abc.ABC):
    """A configured check that observes an external condition on a schedule.

    Subclasses set ``kind`` and implement ``identity``, ``check`` and
    ``observe()``. ``observe()`` is expected to finish by calling
    ``record_outcome()`` with either the incident notification or None; the
    base class turns that into the edge-triggered latch update::

        NoIncident/absent --problem--> notify, HasIncident
        HasIncident       --problem--> HasIncident (silent)
        HasIncident       --clean----> NoIncident (+ recovery notice if enabled)
    """

    kind: ClassVar[str]

    def __init__(self, config: ProbeConfig, metrics: Metrics | None = None) -> None:
        self._config = config
        self._metrics = metrics or Metrics()

    @property
    def config(self) -> ProbeConfig:
        return self._config

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def name(self) -> str:
        """Fully-qualified instance name used for namepass filtering."""
        if self._config.name:
            return f"{self.kind}-{self._config.name}"
        return self.kind

    @property
    @abc.abstractmethod
    def identity(self) -> str:
        """Identifying configuration (kind + target + expected outcome)."""

    @property
    @abc.abstractmethod
    def check(self) -> str:
        """Human description of what this probe checks."""

    def slug(self) -> str:
        return make_slug(self.identity)

    def local_schedule(self) -> str | None:
        return self._config.schedule

    @abc.abstractmethod
    async def observe(self, store: IncidentStore, alerts: AlertGroups) -> None:
        """Run one check; raise CheckError if the check itself cannot run."""

    def incident(self, title: str, message: str, **extra: object) -> Notification:
        """Build a notification for this probe."""
        return Notification(
            source=self.kind,
            name=self.name,
            check=self.check,
            title=title,
            message=message,
            **extra,  # type: ignore[arg-type]
        )

    async def record_outcome(
        self,
        store: IncidentStore,
        alerts: AlertGroups,
        incident: Notification | None,
    ) -> bool:
        """Apply the latch transition for one check result.

        Returns True if a notification was sent.
        """
        slug = self.slug()
        prior = await store.get(slug)
        was_latched = prior is LatchState.HAS_INCIDENT
        notified = False

        self._metrics.probe_outcome(self.kind, self.name, incident is not None)

        if incident is not None:
            logger.info("probe_triggered", probe=self.name, slug=slug, title=incident.title)
            if not was_latched:
                logger.warning("probe_notify", probe=self.name, slug=slug, title=incident.title)
                await notify_all(alerts, incident)
                notified = True
            await store.set(slug, LatchState.HAS_INCIDENT)
            return notified

        if was_latched and self._config.notify_recovery:
            logger.info("probe_recovered", probe=self.name, slug=slug)
            await notify_all(
                alerts,
                self.incident(
                    title=f"RECOVERED: {self.check}",
                    message=f"{self.check} no longer reports an incident.",
                ),
            )
            notified = True
        await store.set(slug, LatchState.NO_INCIDENT)
        return notified

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
