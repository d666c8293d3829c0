"""Shared helpers: ids, clocks and date enumeration."""

import uuid
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, Optional

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Naive local wall-clock time, matching how slot dates and times are stored."""
    return datetime.now()


def new_id(prefix: str) -> str:
    """Generate an opaque record id such as ``BK-3F9A1C22D04E``.

    Examples:
        >>> new_id("SL").startswith("SL-")
        True
    """
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def slot_start(slot_date: date, start_time: time) -> datetime:
    """Combine a slot's date and start time into one datetime."""
    return datetime.combine(slot_date, start_time)


def dates_between(start_date: date, end_date: date) -> list[date]:
    """All dates from ``start_date`` to ``end_date`` inclusive.

    Examples:
        >>> dates_between(date(2025, 1, 30), date(2025, 2, 1))
        [datetime.date(2025, 1, 30), datetime.date(2025, 1, 31), datetime.date(2025, 2, 1)]
    """
    days = (end_date - start_date).days
    return [start_date + timedelta(days=offset) for offset in range(days + 1)]


def dates_for_weekdays(start_date: date, end_date: date, weekdays: Iterable[int]) -> list[date]:
    """Dates in the inclusive range whose ``weekday()`` is in ``weekdays`` (Monday is 0)."""
    wanted = set(weekdays)
    return [d for d in dates_between(start_date, end_date) if d.weekday() in wanted]


def weekly_recurrence(base_dates: Iterable[date], weeks: int) -> list[date]:
    """Repeat ``base_dates`` for ``weeks`` consecutive weeks, preserving order within each week."""
    base = list(base_dates)
    return [d + timedelta(weeks=week) for week in range(weeks) for d in base]


def enumerate_dates(
    start_date: date,
    end_date: date,
    weekdays: Optional[Iterable[int]] = None,
    recurrence_weeks: int = 1,
) -> list[date]:
    """Expand a date range, optional weekday filter and weekly recurrence into a date list."""
    if weekdays is None:
        base = dates_between(start_date, end_date)
    else:
        base = dates_for_weekdays(start_date, end_date, weekdays)
    return weekly_recurrence(base, recurrence_weeks)
