"""Engine test fixtures."""

from __future__ import annotations

import datetime
from collections.abc import Iterator
from unittest.mock import patch

import pytest

from otto.core.cron import CronSchedule

TICK = datetime.timedelta(milliseconds=20)


@pytest.fixture
def fast_cron() -> Iterator[None]:
    """Make every cron schedule fire 20ms after "now"."""

    def _next_fire(self: CronSchedule, now: datetime.datetime | None = None) -> datetime.datetime:
        return (now or datetime.datetime.now(datetime.UTC)) + TICK

    with patch.object(CronSchedule, "next_fire", _next_fire):
        yield
