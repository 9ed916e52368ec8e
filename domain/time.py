"""
Domain time utilities (pure).

Centralized timestamp validation plus the calendar arithmetic used by
reporting and search (day bounds, month windows).

Stored timestamps are always UTC. Calendar boundaries (a "day" or a "month")
are evaluated in a business time zone that callers pass in explicitly.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Tuple

END_OF_DAY = time(23, 59, 59)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the contract requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_calendar_day(text: str | None) -> date | None:
    """Parse `YYYY-MM-DD`; returns None for blank or malformed input."""

    if text is None or not text.strip():
        return None
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        return None


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz: tzinfo) -> datetime:
    """Last whole second of the day (23:59:59) in the business time zone."""

    return datetime.combine(day, END_OF_DAY, tzinfo=tz)


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_window(year: int, month: int, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    Inclusive [start, end] bounds of a calendar month.

    The end bound is the last instant of the last day of the month.
    """

    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=tz)
    end = datetime.combine(date(year, month, last_day), time.max, tzinfo=tz)
    return start, end


def trailing_months(now: datetime, count: int, tz: tzinfo) -> List[Tuple[int, int]]:
    """(year, month) pairs for the `count` months ending at `now`'s month, oldest first."""

    local = now.astimezone(tz)
    return [shift_month(local.year, local.month, -offset) for offset in range(count - 1, -1, -1)]


__all__ = [
    "require_utc_timestamp",
    "utc_now",
    "parse_calendar_day",
    "start_of_day",
    "end_of_day",
    "shift_month",
    "month_window",
    "trailing_months",
]
