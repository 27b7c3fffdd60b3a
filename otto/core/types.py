"""Domain types shared by probes, alerts and the scheduling engine."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LatchState(Enum):
    """Persisted incident status for a single probe slug.

    Values are the fixed 3-byte markers written to the incident store.
    """

    HAS_INCIDENT = b"HAS"
    NO_INCIDENT = b"NON"


class MessageEntry(BaseModel):
    """One item of a batched incident (e.g. a matching feed entry)."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str


class Notification(BaseModel):
    """Immutable incident payload passed from a probe to the alert fanout."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(alias="from")
    name: str
    check: str
    title: str
    message: str
    message_html: str | None = None
    message_entries: tuple[tuple[int, MessageEntry], ...] | None = None

    def to_payload(self) -> dict[str, object]:
        """JSON-ready dict keyed by the external field names."""
        return self.model_dump(mode="json", by_alias=True)
