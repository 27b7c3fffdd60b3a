"""Core module — config, cron, types, logging, errors."""

from otto.core.config import Settings, load_settings
from otto.core.cron import CronSchedule, effective_schedule
from otto.core.exceptions import ConfigError, OttoError, ScheduleError, StoreError
from otto.core.logging import setup_logging
from otto.core.store import IncidentStore, SqliteIncidentStore
from otto.core.types import LatchState, MessageEntry, Notification

__all__ = [
    "ConfigError",
    "CronSchedule",
    "IncidentStore",
    "LatchState",
    "MessageEntry",
    "Notification",
    "OttoError",
    "ScheduleError",
    "Settings",
    "SqliteIncidentStore",
    "StoreError",
    "effective_schedule",
    "load_settings",
    "setup_logging",
]
