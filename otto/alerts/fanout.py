"""Alert fanout — delivers a notification to every matching sink."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from fnmatch import fnmatchcase

import structlog

from otto.alerts.base import Alert
from otto.core.types import Notification

logger = structlog.get_logger(__name__)

AlertGroups = Mapping[str, Sequence[Alert]]


def should_fire(alert: Alert, candidate_name: str) -> bool:
    """Whether *alert* accepts notifications named *candidate_name*.

    No namepass means every name passes; otherwise the name must
    glob-match (case-sensitive ``*`` / ``?``) at least one pattern.
    """
    patterns = alert.namepass()
    if patterns is None:
        return True
    return any(fnmatchcase(candidate_name, pattern) for pattern in patterns)


async def notify_all(alerts: AlertGroups, notification: Notification) -> int:
    """Deliver *notification* to every alert whose filter matches.

    A failing sink is logged and skipped; it never stops delivery to the
    others and never fails the fanout. Returns the number of successful
    deliveries.
    """
    targets: list[Alert] = []
    for kind, group in alerts.items():
        for alert in group:
            if should_fire(alert, notification.name):
                targets.append(alert)
            else:
                logger.info(
                    "alert_filtered",
                    alert=kind,
                    target=alert.target,
                    notification=notification.name,
                )

    if not targets:
        logger.warning("no_alert_matched", notification=notification.name)
        return 0

    results = await asyncio.gather(*(_deliver(alert, notification) for alert in targets))
    return sum(1 for ok in results if ok)


async def _deliver(alert: Alert, notification: Notification) -> bool:
    alert.metrics.alert_run(alert.kind, alert.target)
    try:
        await alert.notify(notification)
    except Exception:
        alert.metrics.alert_failure(alert.kind, alert.target)
        logger.exception(
            "alert_delivery_error",
            alert=alert.kind,
            target=alert.target,
            notification=notification.name,
        )
        return False

    alert.metrics.notification_sent(notification.source, notification.name)
    logger.info(
        "alert_delivered",
        alert=alert.kind,
        target=alert.target,
        notification=notification.name,
    )
    return True
