"""Alert sinks and the notification fanout."""

from otto.alerts.base import Alert
from otto.alerts.chat import DiscordAlert, SlackAlert, TelegramAlert
from otto.alerts.email import EmailAlert
from otto.alerts.exceptions import AlertError, DeliveryError
from otto.alerts.fanout import notify_all, should_fire
from otto.alerts.webhook import WebhookAlert

__all__ = [
    "Alert",
    "AlertError",
    "DeliveryError",
    "DiscordAlert",
    "EmailAlert",
    "SlackAlert",
    "TelegramAlert",
    "WebhookAlert",
    "notify_all",
    "should_fire",
]
