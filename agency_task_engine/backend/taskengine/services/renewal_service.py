# backend/taskengine/services/renewal_service.py
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.cadence import CadenceMode, coerce_mode
from ..domain.posting_plan import (
    ALLOWED_ASSET_TYPES,
    POSTING_CATEGORIES,
    PostingPlan,
    SourceTask,
    plan_posting_tasks,
)
from ..domain.working_days import add_months
from ..models import Assignment, AssignmentAssetSetting, Client, SiteAsset, Task, TaskCategory

log = logging.getLogger(__name__)

TASK_STATUSES = (
    "pending",
    "in_progress",
    "completed",
    "overdue",
    "cancelled",
    "reassigned",
    "qc_approved",
    "paused",
    "data_entered",
)
TASK_PRIORITIES = ("low", "medium", "high", "urgent")


class RenewalBlocked(ValueError):
    """Source tasks are not all qc_approved."""

    def __init__(self, message: str, *, not_approved_task_ids: list[int], counts_by_status: dict[str, int]):
        super().__init__(message)
        self.not_approved_task_ids = not_approved_task_ids
        self.counts_by_status = counts_by_status


@dataclass
class RenewalResult:
    message: str
    client: Client
    assignment_id: int
    tasks: list[Task] = field(default_factory=list)
    skipped: int = 0
    clamped: int = 0


def normalize_priority(v: Any) -> str:
    p = str(v or "").strip().lower()
    return p if p in TASK_PRIORITIES else "medium"


def count_by_status(tasks: list[Task]) -> dict[str, int]:
    counts = {s: 0 for s in TASK_STATUSES}
    counts.update(Counter(t.status for t in tasks))
    return counts


def package_months(client: Client) -> int:
    raw = client.package.total_months if client.package is not None else None
    try:
        months = int(raw) if raw is not None else 1
    except (TypeError, ValueError):
        months = 1
    if months <= 0:
        return 1
    return min(months, settings.max_package_months)


def latest_assignment(db: Session, *, client_id: int, template_key: Optional[str] = None) -> Optional[Assignment]:
    q = select(Assignment).where(Assignment.client_id == client_id)
    if template_key is not None:
        q = q.where(Assignment.template_key == template_key)
    return db.scalar(q.order_by(desc(Assignment.assigned_at), desc(Assignment.id)).limit(1))


def ensure_category(db: Session, name: str) -> TaskCategory:
    row = db.scalar(select(TaskCategory).where(TaskCategory.name == name))
    if row is None:
        row = TaskCategory(name=name)
        db.add(row)
        db.flush()
    return row


def _source_tasks(
    db: Session,
    *,
    assignment_id: int,
    only_type: Optional[str],
    include_asset_ids: Optional[list[int]],
    exclude_asset_ids: Optional[list[int]],
) -> list[Task]:
    q = select(Task).join(SiteAsset, Task.asset_id == SiteAsset.id).where(Task.assignment_id == assignment_id)
    if only_type:
        q = q.where(SiteAsset.type == only_type)
    else:
        q = q.where(SiteAsset.type.in_(ALLOWED_ASSET_TYPES))
    if include_asset_ids:
        q = q.where(SiteAsset.id.in_(include_asset_ids))
    if exclude_asset_ids:
        q = q.where(SiteAsset.id.not_in(exclude_asset_ids))
    return list(db.scalars(q.order_by(Task.id)).all())


def load_plan_sources(
    db: Session,
    *,
    assignment_id: int,
    only_type: Optional[str] = None,
    include_asset_ids: Optional[list[int]] = None,
    exclude_asset_ids: Optional[list[int]] = None,
    blocked_message: str = "All source tasks must be 'qc_approved' before creating posting tasks.",
) -> list[SourceTask]:
    """
    Posting-asset tasks of an assignment as plan sources, with per-assignment
    frequency overrides applied. Raises RenewalBlocked unless every source is
    qc_approved.
    """
    sources = _source_tasks(
        db,
        assignment_id=assignment_id,
        only_type=only_type,
        include_asset_ids=include_asset_ids,
        exclude_asset_ids=exclude_asset_ids,
    )
    if not sources:
        return []

    not_approved = [t for t in sources if t.status != "qc_approved"]
    if not_approved:
        raise RenewalBlocked(
            blocked_message,
            not_approved_task_ids=[int(t.id) for t in not_approved],
            counts_by_status=count_by_status(sources),
        )

    asset_ids = sorted({int(t.asset_id) for t in sources if t.asset_id is not None})
    required_by_asset: dict[int, Optional[int]] = {}
    if asset_ids:
        for s in db.scalars(
            select(AssignmentAssetSetting).where(
                AssignmentAssetSetting.assignment_id == assignment_id,
                AssignmentAssetSetting.asset_id.in_(asset_ids),
            )
        ):
            required_by_asset[int(s.asset_id)] = s.required_frequency

    return [
        SourceTask(
            task_id=int(t.id),
            name=t.name,
            asset_type=t.asset.type if t.asset is not None else None,
            asset_id=t.asset_id,
            required_frequency=required_by_asset.get(int(t.asset_id)) if t.asset_id is not None else None,
            default_frequency=t.asset.default_posting_frequency if t.asset is not None else None,
            priority=t.priority,
        )
        for t in sources
    ]


def existing_posting_names(db: Session, *, assignment_id: int) -> list[str]:
    return list(
        db.scalars(
            select(Task.name)
            .join(TaskCategory, Task.category_id == TaskCategory.id)
            .where(Task.assignment_id == assignment_id, TaskCategory.name.in_(POSTING_CATEGORIES))
        ).all()
    )


def persist_plan(
    db: Session,
    plan: PostingPlan,
    *,
    client_id: int,
    assignment_id: int,
    priority: Optional[str] = None,
) -> list[Task]:
    if not plan.items:
        return []

    categories = {name: ensure_category(db, name) for name in {i.category for i in plan.items}}
    override = normalize_priority(priority) if priority else None

    rows: list[Task] = []
    for item in plan.items:
        row = Task(
            assignment_id=assignment_id,
            client_id=client_id,
            asset_id=item.source.asset_id,
            category_id=categories[item.category].id,
            name=item.name,
            status="pending",
            priority=override or item.source.priority or "medium",
            due_date=item.due_date,
        )
        db.add(row)
        rows.append(row)
    db.flush()
    return rows


def renew_client(
    db: Session,
    *,
    client_id: int,
    renewal_date: datetime,
    template_key: Optional[str] = None,
    only_type: Optional[str] = None,
    include_asset_ids: Optional[list[int]] = None,
    exclude_asset_ids: Optional[list[int]] = None,
    priority: Optional[str] = None,
    mode: Any = CadenceMode.initial,
    clamp_to_contract_end: bool = False,
) -> RenewalResult:
    """
    Start a new contract window for a client and generate its posting tasks.

    Raises LookupError (client/assignment missing) or RenewalBlocked (QC gate).
    The client's renewal fields are updated before tasks are planned; the
    caller owns the commit.
    """
    client = db.get(Client, client_id)
    if client is None:
        raise LookupError("client not found")

    months = package_months(client)
    contract_end = add_months(renewal_date, months)

    client.renewal_date = renewal_date
    client.due_date = contract_end
    client.renewal_count = int(client.renewal_count or 0) + 1
    db.add(client)
    db.flush()

    assignment = latest_assignment(db, client_id=client_id, template_key=template_key)
    if assignment is None:
        raise LookupError("no existing assignment found for this client")

    sources = load_plan_sources(
        db,
        assignment_id=assignment.id,
        only_type=only_type,
        include_asset_ids=include_asset_ids,
        exclude_asset_ids=exclude_asset_ids,
        blocked_message="All source tasks must be 'qc_approved' before creating posting tasks for renewal.",
    )
    if not sources:
        return RenewalResult(message="No source tasks found to copy.", client=client, assignment_id=assignment.id)

    m = coerce_mode(mode)
    plan = plan_posting_tasks(
        sources,
        anchor=renewal_date,
        months=months,
        mode=m,
        existing_names=existing_posting_names(db, assignment_id=assignment.id),
        end=contract_end if clamp_to_contract_end else None,
    )

    rows = persist_plan(db, plan, client_id=client.id, assignment_id=assignment.id, priority=priority)
    if not rows:
        return RenewalResult(
            message="All copies already exist for the renewed window.",
            client=client,
            assignment_id=assignment.id,
            skipped=plan.skipped,
            clamped=plan.clamped,
        )

    log.info(
        "renewal tasks planned",
        extra={
            "client_id": client.id,
            "assignment_id": assignment.id,
            "task_count": len(rows),
            "skipped": plan.skipped,
            "clamped": plan.clamped,
            "mode": m.value,
        },
    )

    return RenewalResult(
        message=f"Created {len(rows)} task(s) for renewal across {', '.join(POSTING_CATEGORIES)}.",
        client=client,
        assignment_id=assignment.id,
        tasks=rows,
        skipped=plan.skipped,
        clamped=plan.clamped,
    )
