from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..db import get_db
from ..domain.cadence import CadenceMode
from ..domain.working_days import as_naive_utc
from ..schemas import RemainingCyclesOut, RemainingTasksIn, RemainingTasksOut, TaskOut
from ..services.renewal_service import RenewalBlocked
from ..services.task_service import generate_remaining_tasks, list_client_tasks, remaining_cycles

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/{client_id}/tasks", response_model=list[TaskOut])
def client_tasks(client_id: int, db: Session = Depends(get_db)):
    try:
        rows = list_client_tasks(db, client_id=client_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [TaskOut.model_validate(r) for r in rows]


@router.get("/{client_id}/remaining-cycles", response_model=RemainingCyclesOut)
def client_remaining_cycles(
    client_id: int,
    mode: CadenceMode = Query(CadenceMode.renewal),
    today: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
):
    # stored dates are naive UTC
    today = as_naive_utc(today) if today is not None else datetime.utcnow()
    try:
        r = remaining_cycles(db, client_id=client_id, today=today, mode=mode)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OverflowError:
        raise HTTPException(status_code=400, detail="due date falls outside the supported calendar range")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RemainingCyclesOut(
        client_id=r.client_id,
        mode=r.mode,
        cycles_to_date=r.cycles_to_date,
        total_cycles=r.total_cycles,
        remaining_cycles=r.remaining_cycles,
    )


@router.post("/{client_id}/remaining-tasks", response_model=RemainingTasksOut)
def client_remaining_tasks(
    client_id: int,
    payload: Optional[RemainingTasksIn] = None,
    db: Session = Depends(get_db),
):
    payload = payload or RemainingTasksIn()
    try:
        result = generate_remaining_tasks(
            db,
            client_id=client_id,
            today=payload.today or datetime.utcnow(),
            mode=payload.mode,
            template_key=payload.template_key,
            only_type=payload.only_type,
            priority=payload.priority,
        )
    except RenewalBlocked as e:
        raise HTTPException(
            status_code=400,
            detail={
                "message": str(e),
                "not_approved_task_ids": e.not_approved_task_ids,
                "counts_by_status": e.counts_by_status,
            },
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OverflowError:
        raise HTTPException(status_code=400, detail="due date falls outside the supported calendar range")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    db.commit()
    for row in result.tasks:
        db.refresh(row)

    out = RemainingTasksOut(
        message=result.message,
        created=len(result.tasks),
        skipped=result.skipped,
        assignment_id=result.assignment_id,
        cycles_to_date=result.cycles.cycles_to_date,
        total_cycles=result.cycles.total_cycles,
        future_cycles=result.cycles.remaining_cycles,
        tasks=[TaskOut.model_validate(t) for t in result.tasks],
    )
    return JSONResponse(status_code=201 if result.tasks else 200, content=jsonable_encoder(out))
