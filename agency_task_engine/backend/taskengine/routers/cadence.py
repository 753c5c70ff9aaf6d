from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from ..config import settings
from ..domain.cadence import (
    base_name_of,
    calculate_task_due_date,
    due_date_series,
    due_dates_until,
    extract_cycle_number,
    normalize_cycle_number,
)
from ..schemas import CycleNameOut, DueDateIn, DueDateOut, SeriesIn, SeriesItemOut, SeriesOut

router = APIRouter(prefix="/cadence", tags=["cadence"])


def _out_of_range() -> HTTPException:
    return HTTPException(status_code=400, detail="due date falls outside the supported calendar range")


@router.post("/due-date", response_model=DueDateOut)
def due_date(payload: DueDateIn):
    cap = settings.max_series_length
    n = normalize_cycle_number(payload.cycle_number)
    if n > cap:
        raise HTTPException(status_code=400, detail=f"cycle_number must be <= {cap}")

    try:
        due = calculate_task_due_date(payload.anchor, n, payload.mode)
    except OverflowError:
        raise _out_of_range()

    return DueDateOut(anchor=payload.anchor, cycle_number=n, mode=payload.mode, due_date=due)


@router.post("/series", response_model=SeriesOut)
def series(payload: SeriesIn):
    cap = settings.max_series_length
    if payload.count is not None and payload.count > cap:
        raise HTTPException(status_code=400, detail=f"count must be <= {cap}")

    try:
        if payload.end is not None:
            limit = cap if payload.count is None else payload.count
            dues = due_dates_until(payload.anchor, payload.end, payload.mode, limit=limit)
        else:
            dues = due_date_series(payload.anchor, payload.count, payload.mode)
    except OverflowError:
        raise _out_of_range()

    return SeriesOut(
        anchor=payload.anchor,
        mode=payload.mode,
        items=[SeriesItemOut(cycle=i, due_date=d) for i, d in enumerate(dues, start=1)],
    )


@router.get("/cycle-number", response_model=CycleNameOut)
def cycle_number(name: str = Query(...)):
    return CycleNameOut(name=name, base_name=base_name_of(name), cycle_number=extract_cycle_number(name))
