"""Plugin registry — configured probe and alert instances grouped by kind."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel

from otto.alerts import DiscordAlert, EmailAlert, SlackAlert, TelegramAlert, WebhookAlert
from otto.alerts.base import Alert
from otto.core.config import Settings
from otto.monitor.metrics import Metrics
from otto.probes import AtomProbe, ExecProbe, HttpProbe, RssProbe
from otto.probes.base import Probe

logger = structlog.get_logger(__name__)

PROBE_PLUGINS: dict[str, Callable[[Any, Metrics], Probe]] = {
    "exec": ExecProbe,
    "http": HttpProbe,
    "atom": AtomProbe,
    "rss": RssProbe,
}

ALERT_PLUGINS: dict[str, Callable[[Any, Metrics], Alert]] = {
    "slack": SlackAlert,
    "discord": DiscordAlert,
    "telegram": TelegramAlert,
    "email": EmailAlert,
    "webhook": WebhookAlert,
}


@dataclass
class Registry:
    """Kind → ordered instances, for probes and alerts.

    Built once per configuration load and treated as read-only afterwards;
    a reload builds a new registry rather than editing this one.
    """

    probes: dict[str, list[Probe]] = field(default_factory=dict)
    alerts: dict[str, list[Alert]] = field(default_factory=dict)

    @property
    def probe_count(self) -> int:
        return sum(len(group) for group in self.probes.values())

    @property
    def alert_count(self) -> int:
        return sum(len(group) for group in self.alerts.values())

    def iter_probes(self) -> Iterator[tuple[str, Probe]]:
        for kind, group in self.probes.items():
            for probe in group:
                yield kind, probe

    async def close(self) -> None:
        """Release alert sessions."""
        for group in self.alerts.values():
            for alert in group:
                try:
                    await alert.close()
                except Exception:
                    logger.exception("alert_close_error", alert=alert.kind, target=alert.target)


def _register(
    section: BaseModel | None,
    plugins: dict[str, Callable[[Any, Metrics], Any]],
    metrics: Metrics,
    group: str,
) -> dict[str, list[Any]]:
    registered: dict[str, list[Any]] = {}
    if section is None:
        logger.warning("no_plugins_configured", group=group)
        return registered

    for kind, factory in plugins.items():
        configs = getattr(section, kind)
        if configs is None:
            logger.info("plugin_not_configured", group=group, plugin=kind)
            continue
        registered[kind] = [factory(cfg, metrics) for cfg in configs]
        logger.info("plugin_registered", group=group, plugin=kind, instances=len(configs))
    return registered


def build_registry(settings: Settings, metrics: Metrics | None = None) -> Registry:
    """Instantiate every configured probe and alert.

    Sections are validated when the settings are loaded, so a malformed
    instance has already surfaced as ``ConfigError``; absent kinds simply
    produce no entry.
    """
    sink = metrics or Metrics()
    return Registry(
        probes=_register(settings.probes, PROBE_PLUGINS, sink, "probes"),
        alerts=_register(settings.alerts, ALERT_PLUGINS, sink, "alerts"),
    )
