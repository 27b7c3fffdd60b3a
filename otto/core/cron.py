"""Cron schedules with optional second-level granularity."""

from __future__ import annotations

import datetime

from croniter import croniter

from otto.core.exceptions import ScheduleError


class CronSchedule:
    """A parsed cron expression that yields successive fire times.

    Accepts the standard five fields (``min hour dom month dow``) or six
    fields with a leading seconds column (``sec min hour dom month dow``)::

        CronSchedule("*/5 * * * * *").next_fire()   # every five seconds
        CronSchedule("0 2 * * *").next_fire()       # daily at 02:00 UTC

    Fire times are always computed from the supplied "now", never by adding
    a fixed interval to the previous fire time.
    """

    def __init__(self, expression: str) -> None:
        fields = expression.split()
        if len(fields) not in (5, 6):
            raise ScheduleError(
                f"invalid cron expression `{expression}`: expected 5 or 6 fields, got {len(fields)}"
            )
        self._expression = expression
        now = datetime.datetime.now(datetime.UTC)
        try:
            self._iter = croniter(" ".join(fields), now, second_at_beginning=True)
        except (ValueError, KeyError) as exc:
            raise ScheduleError(f"invalid cron expression `{expression}`: {exc}") from exc

    @property
    def expression(self) -> str:
        return self._expression

    def next_fire(self, now: datetime.datetime | None = None) -> datetime.datetime:
        """Return the first fire time strictly after *now* (UTC by default)."""
        start = now or datetime.datetime.now(datetime.UTC)
        self._iter.set_current(start, force=True)
        return self._iter.get_next(datetime.datetime)

    def __repr__(self) -> str:
        return f"CronSchedule({self._expression!r})"


def effective_schedule(local: str | None, default: str) -> str:
    """Per-instance override if present, else the global default."""
    return local if local else default
