"""Tests for cron schedules — field counts, second granularity, errors."""

from __future__ import annotations

import datetime

import pytest

from otto.core.exceptions import ConfigError, ScheduleError
from otto.core.cron import CronSchedule, effective_schedule

UTC = datetime.UTC


def _at(*args: int) -> datetime.datetime:
    return datetime.datetime(*args, tzinfo=UTC)


class TestCronSchedule:
    def test_six_fields_second_granularity(self) -> None:
        cron = CronSchedule("*/5 * * * * *")
        assert cron.next_fire(_at(2024, 1, 1, 0, 0, 1)) == _at(2024, 1, 1, 0, 0, 5)

    def test_strictly_after_now(self) -> None:
        cron = CronSchedule("*/5 * * * * *")
        assert cron.next_fire(_at(2024, 1, 1, 0, 0, 5)) == _at(2024, 1, 1, 0, 0, 10)

    def test_five_fields(self) -> None:
        cron = CronSchedule("0 2 * * *")
        assert cron.next_fire(_at(2024, 1, 1, 3, 0, 0)) == _at(2024, 1, 2, 2, 0, 0)

    def test_successive_fires_from_now(self) -> None:
        cron = CronSchedule("30 * * * * *")
        first = cron.next_fire(_at(2024, 1, 1, 0, 0, 0))
        second = cron.next_fire(first)
        assert (second - first) == datetime.timedelta(minutes=1)

    def test_default_now_is_future(self) -> None:
        now = datetime.datetime.now(UTC)
        assert CronSchedule("* * * * * *").next_fire() > now

    @pytest.mark.parametrize("expression", ["", "bad", "* * *", "* * * * * * * *", "61 * * * * *"])
    def test_invalid_expression(self, expression: str) -> None:
        with pytest.raises(ScheduleError):
            CronSchedule(expression)

    def test_schedule_error_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            CronSchedule("nope")

    def test_expression_property(self) -> None:
        assert CronSchedule("0 * * * *").expression == "0 * * * *"


class TestEffectiveSchedule:
    def test_local_overrides_default(self) -> None:
        assert effective_schedule("*/5 * * * * *", "0 * * * *") == "*/5 * * * * *"

    def test_default_when_absent(self) -> None:
        assert effective_schedule(None, "0 * * * *") == "0 * * * *"
