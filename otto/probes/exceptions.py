"""Exception hierarchy for probes."""

from __future__ import annotations

from otto.core.exceptions import OttoError


class ProbeError(OttoError):
    """Base exception for all probe errors."""


class CheckError(ProbeError):
    """The underlying check action could not be performed (spawn, fetch, parse)."""
