"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from otto.core.cron import CronSchedule
from otto.core.exceptions import ConfigError, ScheduleError

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


# ── Probe plugin configuration ──────────────────────────────────


class ProbeConfig(BaseModel):
    """Fields shared by every probe instance."""

    name: str | None = None
    schedule: str | None = None
    notify_recovery: bool = False


class ExecProbeConfig(ProbeConfig):
    """Run a command; a non-zero exit status is an incident."""

    cmd: str
    args: list[str] = Field(default_factory=list)
    timeout_secs: float = 60.0


class HttpProbeConfig(ProbeConfig):
    """Issue an HTTP request; an unexpected status code is an incident."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    method: Literal["get", "post"] = "get"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = Field(default=None, alias="json")
    expected_code: int = 200
    timeout_secs: float = 10.0

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, value: Any) -> Any:
        """Accept ``GET`` / ``Post`` spellings."""
        return value.lower() if isinstance(value, str) else value


class AtomProbeConfig(ProbeConfig):
    """Poll an Atom feed for entries matching the configured patterns."""

    feed_url: str
    title_regex: str | None = None
    content_regex: str | None = None
    timeout_secs: float = 10.0


class RssProbeConfig(ProbeConfig):
    """Poll an RSS feed for items matching the configured patterns."""

    feed_url: str
    title_regex: str | None = None
    description_regex: str | None = None
    timeout_secs: float = 10.0


class ProbesConfig(BaseModel):
    """Probe instances grouped by plugin kind; absent kinds stay None."""

    exec: list[ExecProbeConfig] | None = None
    http: list[HttpProbeConfig] | None = None
    atom: list[AtomProbeConfig] | None = None
    rss: list[RssProbeConfig] | None = None


# ── Alert plugin configuration ──────────────────────────────────


class AlertConfig(BaseModel):
    """Fields shared by every alert instance."""

    namepass: list[str] | None = None


class SlackAlertConfig(AlertConfig):
    """Slack incoming webhook."""

    webhook_url: SecretStr


class DiscordAlertConfig(AlertConfig):
    """Discord webhook with embeds."""

    webhook_url: SecretStr


class TelegramAlertConfig(AlertConfig):
    """Telegram Bot API (HTML parse mode)."""

    bot_token: SecretStr
    chat_id: str


class EmailAlertConfig(AlertConfig):
    """SMTP relay delivery."""

    model_config = ConfigDict(populate_by_name=True)

    smtp_relay: str
    smtp_port: int = 465
    smtp_username: str = ""
    smtp_password: SecretStr = SecretStr("")
    sender: str = Field(alias="from")
    to: str
    timeout_secs: float = 30.0


class WebhookAlertConfig(AlertConfig):
    """Generic JSON webhook."""

    url: str
    headers: dict[str, str] = Field(default_factory=dict)


class AlertsConfig(BaseModel):
    """Alert instances grouped by plugin kind; absent kinds stay None."""

    slack: list[SlackAlertConfig] | None = None
    discord: list[DiscordAlertConfig] | None = None
    telegram: list[TelegramAlertConfig] | None = None
    email: list[EmailAlertConfig] | None = None
    webhook: list[WebhookAlertConfig] | None = None


# ── Agent configuration ─────────────────────────────────────────


class StoreConfig(BaseModel):
    """Incident store location."""

    path: str = "data/incidents.db"


class SchedulerConfig(BaseModel):
    """Scheduler generation lifecycle."""

    grace_secs: float = 10.0


class PrometheusConfig(BaseModel):
    """Metrics endpoint."""

    listen: str = "127.0.0.1:9090"
    path: str = "/metrics"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container.

    ``schedule`` is the default cron expression for probes that do not set
    their own and is the only mandatory key. It is parsed at load time so a
    bad default fails startup instead of silently stopping every loop that
    falls back to it.
    """

    schedule: str
    store: StoreConfig = StoreConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    prometheus: PrometheusConfig | None = None
    probes: ProbesConfig | None = None
    alerts: AlertsConfig | None = None
    logging: LoggingConfig = LoggingConfig()

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, value: str) -> str:
        try:
            CronSchedule(value)
        except ScheduleError as exc:
            raise ValueError(str(exc)) from exc
        return value


def load_settings(path: str | Path | None = None) -> Settings:
    """Read and validate a YAML config file.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            match the settings schema.
    """
    config_path = Path(path or _DEFAULT_CONFIG_PATH)
    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"could not read config file `{config_path}`: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse config file `{config_path}`: {exc}") from exc

    data: dict[str, Any] = raw if isinstance(raw, dict) else {}
    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid config file `{config_path}`: {exc}") from exc
