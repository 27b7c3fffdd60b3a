"""Email alert sink — SMTP relay delivery.

``smtplib`` is blocking, so the send runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.message import EmailMessage

import structlog

from otto.alerts.base import Alert
from otto.alerts.exceptions import DeliveryError
from otto.core.config import EmailAlertConfig
from otto.core.types import Notification
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)

_IMPLICIT_TLS_PORT = 465


class EmailAlert(Alert):
    """Sends a plain-text (and, when available, HTML) email per notification."""

    kind = "email"

    def __init__(self, config: EmailAlertConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._email = config

    @property
    def target(self) -> str:
        return f"{self._email.smtp_relay}:{self._email.to}"

    def build_message(self, notification: Notification) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._email.sender
        msg["Reply-To"] = self._email.sender
        msg["To"] = self._email.to
        msg["Subject"] = f"TRIGGERED [{notification.source}]: {notification.title}"
        msg.set_content(f"{notification.check}\n{notification.message}")
        if notification.message_html is not None:
            msg.add_alternative(
                f"<p>{notification.check}</p>{notification.message_html}",
                subtype="html",
            )
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        cfg = self._email
        context = ssl.create_default_context()
        if cfg.smtp_port == _IMPLICIT_TLS_PORT:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.smtp_relay, cfg.smtp_port, timeout=cfg.timeout_secs, context=context
            )
        else:
            smtp = smtplib.SMTP(cfg.smtp_relay, cfg.smtp_port, timeout=cfg.timeout_secs)
        with smtp:
            if cfg.smtp_port != _IMPLICIT_TLS_PORT:
                smtp.starttls(context=context)
            if cfg.smtp_username:
                smtp.login(cfg.smtp_username, cfg.smtp_password.get_secret_value())
            smtp.send_message(msg)

    async def notify(self, notification: Notification) -> None:
        logger.info(
            "email_sending",
            to=self._email.to,
            relay=self._email.smtp_relay,
            notification=notification.name,
        )
        msg = self.build_message(notification)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"failed to send email to {self._email.to}: {exc}") from exc
