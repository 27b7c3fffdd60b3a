"""Exception hierarchy for alert sinks."""

from __future__ import annotations

from otto.core.exceptions import OttoError


class AlertError(OttoError):
    """Base exception for all alert errors."""


class DeliveryError(AlertError):
    """An alert sink failed to deliver a notification."""
