"""Base exception hierarchy."""

from __future__ import annotations


class OttoError(Exception):
    """Base exception for all agent errors."""


class ConfigError(OttoError):
    """Configuration could not be read or validated."""


class ScheduleError(ConfigError):
    """A cron expression could not be parsed."""


class StoreError(OttoError):
    """Reading or writing the incident store failed."""
