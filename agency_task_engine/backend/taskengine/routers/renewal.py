from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..schemas import RenewalIn, RenewalOut, TaskOut
from ..services.renewal_service import RenewalBlocked, renew_client

router = APIRouter(prefix="/renewal", tags=["renewal"])


@router.post("", response_model=RenewalOut)
def renew(payload: RenewalIn, db: Session = Depends(get_db)):
    try:
        result = renew_client(
            db,
            client_id=payload.client_id,
            renewal_date=payload.renewal_date,
            template_key=payload.template_key,
            only_type=payload.only_type,
            include_asset_ids=payload.include_asset_ids,
            exclude_asset_ids=payload.exclude_asset_ids,
            priority=payload.priority,
            mode=payload.mode or settings.default_cadence_mode,
            clamp_to_contract_end=payload.clamp_to_contract_end,
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

    db.commit()
    for row in result.tasks:
        db.refresh(row)
    db.refresh(result.client)

    out = RenewalOut(
        message=result.message,
        created=len(result.tasks),
        skipped=result.skipped,
        clamped=result.clamped,
        assignment_id=result.assignment_id,
        renewal_date=result.client.renewal_date,
        due_date=result.client.due_date,
        renewal_count=result.client.renewal_count,
        tasks=[TaskOut.model_validate(t) for t in result.tasks],
    )
    return JSONResponse(status_code=201 if result.tasks else 200, content=jsonable_encoder(out))
