"""Generic webhook alert sink — POSTs the notification as JSON."""

from __future__ import annotations

import aiohttp
import structlog

from otto.alerts.base import Alert
from otto.alerts.exceptions import DeliveryError
from otto.core.config import WebhookAlertConfig
from otto.core.types import Notification
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)


class WebhookAlert(Alert):
    """Delivers the raw notification to an arbitrary HTTP endpoint."""

    kind = "webhook"

    def __init__(self, config: WebhookAlertConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._url = config.url
        self._headers = dict(config.headers)

    @property
    def target(self) -> str:
        return self._url

    async def notify(self, notification: Notification) -> None:
        logger.info("webhook_sending", target=self._url, notification=notification.name)
        try:
            session = self._get_session()
            async with session.post(
                self._url,
                json=notification.to_payload(),
                headers=self._headers,
            ) as resp:
                if 200 <= resp.status < 300:
                    return
                body = await resp.text()
        except aiohttp.ClientError as exc:
            raise DeliveryError(f"failed to send webhook alert to {self._url}: {exc}") from exc

        logger.warning("webhook_send_failed", status=resp.status, body=body[:200])
        raise DeliveryError(
            f"failed sending webhook alert to {self._url}, expected a 2xx status, got {resp.status}"
        )
