"""Tests for otto/core/types.py — Notification immutability and serialisation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from otto.core.types import LatchState, MessageEntry, Notification


def _notification(**kw: object) -> Notification:
    defaults: dict[str, object] = {
        "source": "exec",
        "name": "exec-build",
        "check": "build passes",
        "title": "build failed",
        "message": "exit status 2",
    }
    defaults.update(kw)
    return Notification(**defaults)  # type: ignore[arg-type]


class TestLatchState:
    def test_markers_are_three_bytes(self) -> None:
        for state in LatchState:
            assert isinstance(state.value, bytes)
            assert len(state.value) == 3

    def test_markers_distinct(self) -> None:
        assert LatchState.HAS_INCIDENT.value != LatchState.NO_INCIDENT.value


class TestNotification:
    def test_frozen(self) -> None:
        n = _notification()
        with pytest.raises(ValidationError):
            n.title = "changed"  # type: ignore[misc]

    def test_alias_from(self) -> None:
        n = Notification.model_validate(
            {"from": "http", "name": "http", "check": "c", "title": "t", "message": "m"}
        )
        assert n.source == "http"

    def test_payload_uses_alias(self) -> None:
        payload = _notification().to_payload()
        assert payload["from"] == "exec"
        assert "source" not in payload
        assert payload["message_html"] is None
        assert payload["message_entries"] is None

    def test_payload_entries(self) -> None:
        n = _notification(
            message_entries=((0, MessageEntry(title="a", description="b")),),
        )
        payload = n.to_payload()
        assert payload["message_entries"] == [[0, {"title": "a", "description": "b"}]]

    def test_equal_by_value(self) -> None:
        assert _notification() == _notification()
