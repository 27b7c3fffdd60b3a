"""Shared builders for alert tests — notifications and mocked aiohttp sessions."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from otto.core.types import MessageEntry, Notification


def make_notification(**kw: object) -> Notification:
    defaults: dict[str, object] = {
        "source": "exec",
        "name": "exec-build",
        "check": "`make` `test`",
        "title": "`make` `test` got code 2",
        "message": "exit status 2: **boom**",
    }
    defaults.update(kw)
    return Notification(**defaults)  # type: ignore[arg-type]


def make_entries(*titles: str) -> tuple[tuple[int, MessageEntry], ...]:
    return tuple(
        (i, MessageEntry(title=title, description=f"{title} details"))
        for i, title in enumerate(titles)
    )


def mock_response(status: int = 200, text: str = "ok") -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=False)
    return resp


def mock_session(resp: AsyncMock | None = None, side_effect: Exception | None = None) -> MagicMock:
    session = MagicMock()
    if side_effect is not None:
        session.post = MagicMock(side_effect=side_effect)
    else:
        session.post = MagicMock(return_value=resp or mock_response())
    session.closed = False
    return session
