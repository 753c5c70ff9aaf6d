# agency_task_engine/backend/taskengine/domain/cadence.py
"""
Working-day task cadence.

Two schedules exist for a recurring task series:

- initial:  ramp-up. Cycle 1 is due 10 working days after the anchor; every
            later cycle is due 5 working days after the previous cycle's due
            date (a chain, not a closed form).
- renewal:  steady. Cycle n is due 1 + (n - 1) * 7 working days after the
            anchor.

Everything here is total: bad cycle numbers are clamped, unknown modes fall
back to `initial`, unparseable task names mean cycle 1.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Optional, TypeVar

from .working_days import add_working_days, align_to

D = TypeVar("D", date, datetime)

INITIAL_FIRST_CYCLE_WD = 10
INITIAL_STEP_WD = 5
RENEWAL_FIRST_CYCLE_WD = 1
RENEWAL_STEP_WD = 7

_CYCLE_SUFFIX_RE = re.compile(r"\s*-\s*(\d+)$", re.IGNORECASE)


class CadenceMode(str, Enum):
    initial = "initial"
    renewal = "renewal"


def coerce_mode(mode: Any) -> CadenceMode:
    if isinstance(mode, CadenceMode):
        return mode
    m = str(mode or "").strip().lower()
    if m == CadenceMode.renewal.value:
        return CadenceMode.renewal
    return CadenceMode.initial


def normalize_cycle_number(cycle_number: Any) -> int:
    """max(1, floor(x)). Anything that isn't a finite number becomes 1."""
    try:
        x = float(cycle_number)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(x):
        return 1
    return max(1, int(math.floor(x)))


# -----------------------------
# Task naming
# -----------------------------
def extract_cycle_number(task_name: Any) -> int:
    if not isinstance(task_name, str):
        return 1
    m = _CYCLE_SUFFIX_RE.search(task_name)
    return int(m.group(1)) if m else 1


def base_name_of(task_name: Any) -> str:
    return _CYCLE_SUFFIX_RE.sub("", str(task_name or "")).strip()


def cycle_task_name(base: str, cycle_number: int) -> str:
    return f"{base} -{int(cycle_number)}"


# -----------------------------
# Due dates
# -----------------------------
def calculate_task_due_date(anchor: D, cycle_number: Any, mode: Any = CadenceMode.initial) -> D:
    n = normalize_cycle_number(cycle_number)

    if coerce_mode(mode) == CadenceMode.initial:
        due = add_working_days(anchor, INITIAL_FIRST_CYCLE_WD)
        # each step builds on the previous cycle's result
        for _ in range(n - 1):
            due = add_working_days(due, INITIAL_STEP_WD)
        return due

    offset = RENEWAL_FIRST_CYCLE_WD + (n - 1) * RENEWAL_STEP_WD
    return add_working_days(anchor, offset)


def calculate_initial_due_date(anchor: D, cycle_number: Any) -> D:
    return calculate_task_due_date(anchor, cycle_number, CadenceMode.initial)


def calculate_renewal_due_date(anchor: D, cycle_number: Any) -> D:
    return calculate_task_due_date(anchor, cycle_number, CadenceMode.renewal)


def iter_due_dates(anchor: D, mode: Any = CadenceMode.initial) -> Iterator[tuple[int, D]]:
    """
    Yield (cycle, due) for cycle 1, 2, ... forever.

    Each term is derived from the cached previous term, so generating a
    series of N costs O(N) date steps instead of O(N^2).
    """
    m = coerce_mode(mode)
    if m == CadenceMode.initial:
        first, step = INITIAL_FIRST_CYCLE_WD, INITIAL_STEP_WD
    else:
        first, step = RENEWAL_FIRST_CYCLE_WD, RENEWAL_STEP_WD

    due = add_working_days(anchor, first)
    cycle = 1
    while True:
        yield cycle, due
        cycle += 1
        due = add_working_days(due, step)


def due_date_series(anchor: D, count: Any, mode: Any = CadenceMode.initial) -> list[D]:
    try:
        n = int(count)
    except (TypeError, ValueError):
        return []
    out: list[D] = []
    if n <= 0:
        return out
    for cycle, due in iter_due_dates(anchor, mode):
        out.append(due)
        if cycle >= n:
            break
    return out


def due_dates_until(
    anchor: D,
    end: D,
    mode: Any = CadenceMode.initial,
    *,
    limit: Optional[int] = None,
) -> list[D]:
    """
    All due dates <= end, optionally capped at `limit` cycles.

    `end` is aligned to the anchor first, so mixing naive, aware and plain
    date bounds never raises.
    """
    end = align_to(end, anchor)
    out: list[D] = []
    if end < anchor or (limit is not None and limit <= 0):
        return out
    for cycle, due in iter_due_dates(anchor, mode):
        if due > end:
            break
        out.append(due)
        if limit is not None and cycle >= limit:
            break
    return out


def count_cycles_until(anchor: D, end: D, mode: Any = CadenceMode.initial) -> int:
    return len(due_dates_until(anchor, end, mode))
