from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, asc
from sqlalchemy.orm import Session

from ..domain.cadence import CadenceMode, coerce_mode, count_cycles_until
from ..domain.posting_plan import plan_posting_tasks
from ..models import Client, Task
from .renewal_service import existing_posting_names, latest_assignment, load_plan_sources, persist_plan

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemainingCycles:
    client_id: int
    mode: CadenceMode
    cycles_to_date: int
    total_cycles: int

    @property
    def remaining_cycles(self) -> int:
        return max(0, self.total_cycles - self.cycles_to_date)


@dataclass
class RemainingTasksResult:
    message: str
    cycles: RemainingCycles
    assignment_id: Optional[int] = None
    tasks: list[Task] = field(default_factory=list)
    skipped: int = 0


def get_client_or_raise(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise LookupError("client not found")
    return client


def list_client_tasks(db: Session, *, client_id: int) -> list[Task]:
    get_client_or_raise(db, client_id)
    return list(
        db.scalars(
            select(Task).where(Task.client_id == client_id).order_by(asc(Task.due_date), asc(Task.id))
        ).all()
    )


def remaining_cycles(
    db: Session,
    *,
    client_id: int,
    today: datetime,
    mode: Any = CadenceMode.renewal,
) -> RemainingCycles:
    """
    Cycles still ahead between `today` and the client's contract end.

    The series is anchored on the client's start date. Raises ValueError when
    the client has no start date or no contract end.
    """
    client = get_client_or_raise(db, client_id)
    if client.start_date is None:
        raise ValueError("client start date is required")
    if client.due_date is None:
        raise ValueError("client due date is required for future task generation")

    m = coerce_mode(mode)
    return RemainingCycles(
        client_id=int(client.id),
        mode=m,
        cycles_to_date=count_cycles_until(client.start_date, today, m),
        total_cycles=count_cycles_until(client.start_date, client.due_date, m),
    )


def generate_remaining_tasks(
    db: Session,
    *,
    client_id: int,
    today: datetime,
    mode: Any = CadenceMode.renewal,
    template_key: Optional[str] = None,
    only_type: Optional[str] = None,
    priority: Optional[str] = None,
) -> RemainingTasksResult:
    """
    Top up a running series with the cycles left before the contract end.

    Copies continue the numbering after the cycles already elapsed at
    `today`, so a client two cycles in gets "<base> -3" onwards, each due on
    its own cycle date from the client's start. Existing names are skipped.
    Raises LookupError, ValueError (missing dates) or RenewalBlocked.
    """
    cycles = remaining_cycles(db, client_id=client_id, today=today, mode=mode)
    if cycles.remaining_cycles == 0:
        return RemainingTasksResult(message="No remaining cycles before the contract end.", cycles=cycles)

    assignment = latest_assignment(db, client_id=client_id, template_key=template_key)
    if assignment is None:
        raise LookupError("no existing assignment found for this client")

    sources = load_plan_sources(db, assignment_id=assignment.id, only_type=only_type)
    if not sources:
        return RemainingTasksResult(
            message="No source tasks found to copy.", cycles=cycles, assignment_id=assignment.id
        )

    client = get_client_or_raise(db, client_id)
    plan = plan_posting_tasks(
        sources,
        anchor=client.start_date,
        months=cycles.remaining_cycles,
        mode=cycles.mode,
        existing_names=existing_posting_names(db, assignment_id=assignment.id),
        first_cycle=cycles.cycles_to_date + 1,
    )

    rows = persist_plan(db, plan, client_id=client.id, assignment_id=assignment.id, priority=priority)
    if not rows:
        return RemainingTasksResult(
            message="All remaining copies already exist.",
            cycles=cycles,
            assignment_id=assignment.id,
            skipped=plan.skipped,
        )

    log.info(
        "remaining tasks planned",
        extra={
            "client_id": client.id,
            "assignment_id": assignment.id,
            "task_count": len(rows),
            "skipped": plan.skipped,
            "mode": cycles.mode.value,
        },
    )

    return RemainingTasksResult(
        message=f"Created {len(rows)} task(s) for {cycles.remaining_cycles} remaining cycle(s).",
        cycles=cycles,
        assignment_id=assignment.id,
        tasks=rows,
        skipped=plan.skipped,
    )
