# agency_task_engine/backend/taskengine/domain/working_days.py
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import TypeVar

D = TypeVar("D", date, datetime)

_ONE_DAY = timedelta(days=1)


def is_weekend(d: date) -> bool:
    """Saturday or Sunday."""
    return d.weekday() >= 5


def add_working_days(start: D, working_days: int) -> D:
    """
    Advance `start` one calendar day at a time, counting only Mon-Fri.

    The start day itself is never counted, so the first working day is always
    at least one calendar day later. n <= 0 returns `start` unchanged.
    Time-of-day (and tzinfo) of a datetime survive untouched.
    """
    result = start
    remaining = int(working_days)
    while remaining > 0:
        result = result + _ONE_DAY
        if not is_weekend(result):
            remaining -= 1
    return result


def add_calendar_days(start: D, days: int) -> D:
    return start + timedelta(days=int(days))


def add_months(start: D, months: int) -> D:
    """Calendar-month shift; day-of-month clamps to the end of the target month."""
    idx = start.month - 1 + int(months)
    y = start.year + idx // 12
    m = idx % 12 + 1
    last_day = calendar.monthrange(y, m)[1]
    return start.replace(year=y, month=m, day=min(start.day, last_day))


def count_working_days_between(start: date, end: date) -> int:
    """Weekdays in (start, end]. 0 when end <= start."""
    if end <= start:
        return 0
    n = 0
    cur = start
    while cur < end:
        cur = cur + _ONE_DAY
        if cur > end:
            break
        if not is_weekend(cur):
            n += 1
    return n


def as_naive_utc(d: D) -> D:
    """Aware datetimes become naive UTC; naive values and plain dates pass through."""
    if isinstance(d, datetime) and d.tzinfo is not None:
        return d.astimezone(timezone.utc).replace(tzinfo=None)
    return d


def align_to(value: date, like: D) -> D:
    """
    Coerce `value` so it compares safely against `like`.

    A plain date next to a datetime becomes midnight of that day; an aware
    value next to a naive one is shifted to UTC and stripped; a naive value
    next to an aware one borrows its tzinfo.
    """
    if isinstance(like, datetime):
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min)
        if like.tzinfo is None:
            return as_naive_utc(value)
        if value.tzinfo is None:
            return value.replace(tzinfo=like.tzinfo)
        return value
    if isinstance(value, datetime):
        return as_naive_utc(value).date()
    return value
