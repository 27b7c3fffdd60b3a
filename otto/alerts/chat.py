"""Chat alert sinks — Slack, Discord and Telegram delivery."""

from __future__ import annotations

from html import escape as html_escape
from typing import Any
from urllib.parse import urlsplit

import aiohttp
import structlog

from otto.alerts.base import Alert
from otto.alerts.exceptions import DeliveryError
from otto.core.config import DiscordAlertConfig, SlackAlertConfig, TelegramAlertConfig
from otto.core.types import Notification
from otto.monitor.metrics import Metrics

logger = structlog.get_logger(__name__)

_USERNAME = "Otto"

_SLACK_COLOR = "#ede542"
_DISCORD_COLOR = 0xEDE542
_DISCORD_DESCRIPTION_LIMIT = 2048


def _redact(url: str) -> str:
    """Keep scheme, host and the first path segment of a secret URL."""
    parts = urlsplit(url)
    segments = [s for s in parts.path.split("/") if s]
    prefix = f"/{segments[0]}" if segments else ""
    return f"{parts.scheme}://{parts.netloc}{prefix}/[redacted]"


def _entry_sections(notification: Notification) -> list[tuple[str, str]]:
    """(title, text) pairs: one per message entry, else one for the whole check."""
    if notification.message_entries:
        total = len(notification.message_entries)
        return [
            (f"[{index + 1} of {total}] {entry.title}", entry.description)
            for index, entry in notification.message_entries
        ]
    return [(notification.check, notification.message)]


async def _post_json(
    session: aiohttp.ClientSession,
    url: str,
    payload: dict[str, Any],
    kind: str,
    target: str,
    ok_statuses: tuple[int, ...] = (200, 204),
) -> None:
    try:
        async with session.post(url, json=payload) as resp:
            if resp.status in ok_statuses:
                return
            body = await resp.text()
    except aiohttp.ClientError as exc:
        raise DeliveryError(f"failed to post message to {kind} {target}: {exc}") from exc

    logger.warning(f"{kind}_send_failed", status=resp.status, body=body[:200])
    raise DeliveryError(f"{kind} {target} responded with status {resp.status}")


class SlackAlert(Alert):
    """Delivers alerts to a Slack incoming webhook."""

    kind = "slack"

    def __init__(self, config: SlackAlertConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._webhook_url = config.webhook_url.get_secret_value()

    @property
    def target(self) -> str:
        return _redact(self._webhook_url)

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        attachments = [
            {"title": title, "text": text.replace("**", "*"), "color": _SLACK_COLOR}
            for title, text in _entry_sections(notification)
        ]
        return {
            "username": _USERNAME,
            "icon_emoji": ":robot_face:",
            "text": f"*TRIGGERED `{notification.source}`:* {notification.title}",
            "attachments": attachments,
        }

    async def notify(self, notification: Notification) -> None:
        logger.info("slack_sending", target=self.target, notification=notification.name)
        await _post_json(
            self._get_session(),
            self._webhook_url,
            self.build_payload(notification),
            self.kind,
            self.target,
        )


class DiscordAlert(Alert):
    """Delivers alerts via a Discord webhook with one embed per entry."""

    kind = "discord"

    def __init__(self, config: DiscordAlertConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._webhook_url = config.webhook_url.get_secret_value()

    @property
    def target(self) -> str:
        return _redact(self._webhook_url)

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        embeds = [
            {
                "title": title,
                "description": text[:_DISCORD_DESCRIPTION_LIMIT],
                "color": _DISCORD_COLOR,
            }
            for title, text in _entry_sections(notification)
        ]
        return {
            "username": _USERNAME,
            "content": f"**TRIGGERED `{notification.source}`:** {notification.title}",
            "embeds": embeds,
        }

    async def notify(self, notification: Notification) -> None:
        logger.info("discord_sending", target=self.target, notification=notification.name)
        await _post_json(
            self._get_session(),
            self._webhook_url,
            self.build_payload(notification),
            self.kind,
            self.target,
        )


class TelegramAlert(Alert):
    """Delivers alerts via the Telegram Bot API (HTML parse mode)."""

    kind = "telegram"

    def __init__(self, config: TelegramAlertConfig, metrics: Metrics | None = None) -> None:
        super().__init__(config, metrics)
        self._token = config.bot_token.get_secret_value()
        self._chat_id = config.chat_id

    @property
    def target(self) -> str:
        return f"chat:{self._chat_id}"

    def build_text(self, notification: Notification) -> str:
        text_parts = [
            f"<b>TRIGGERED [{html_escape(notification.source)}] "
            f"{html_escape(notification.title)}</b>"
        ]
        for title, text in _entry_sections(notification):
            text_parts.append(f"<code>{html_escape(title)}</code>\n{html_escape(text)}")
        return "\n\n".join(text_parts)

    async def notify(self, notification: Notification) -> None:
        url = f"https://api.telegram.org/bot{self._token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": self.build_text(notification),
            "parse_mode": "HTML",
        }
        logger.info("telegram_sending", target=self.target, notification=notification.name)
        await _post_json(self._get_session(), url, payload, self.kind, self.target, (200,))
