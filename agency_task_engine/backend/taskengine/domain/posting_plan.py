# agency_task_engine/backend/taskengine/domain/posting_plan.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from itertools import islice
from typing import Any, Iterable, Optional

from .cadence import (
    CadenceMode,
    base_name_of,
    calculate_task_due_date,
    coerce_mode,
    cycle_task_name,
    extract_cycle_number,
    iter_due_dates,
)
from .working_days import align_to

ASSET_SOCIAL_SITE = "social_site"
ASSET_WEB2_SITE = "web2_site"
ASSET_OTHER = "other_asset"
ALLOWED_ASSET_TYPES = (ASSET_SOCIAL_SITE, ASSET_WEB2_SITE, ASSET_OTHER)

CAT_SOCIAL_ACTIVITY = "Social Activity"
CAT_BLOG_POSTING = "Blog Posting"
CAT_SOCIAL_COMMUNICATION = "Social Communication"
POSTING_CATEGORIES = (CAT_SOCIAL_ACTIVITY, CAT_BLOG_POSTING, CAT_SOCIAL_COMMUNICATION)


def resolve_frequency(required: Any = None, default: Any = None) -> int:
    for v in (required, default):
        try:
            f = float(v)
        except (TypeError, ValueError):
            continue
        if math.isfinite(f) and f > 0:
            return max(1, int(math.floor(f)))
    return 1


def resolve_category(asset_type: Optional[str]) -> str:
    if asset_type == ASSET_WEB2_SITE:
        return CAT_BLOG_POSTING
    return CAT_SOCIAL_ACTIVITY


def social_communication_name(base: str) -> str:
    return f"{base or 'Social'} - {CAT_SOCIAL_COMMUNICATION}"


@dataclass(frozen=True)
class SourceTask:
    """A QC-approved task whose asset drives the renewed series."""

    task_id: Any
    name: str
    asset_type: Optional[str]
    asset_id: Optional[int] = None
    required_frequency: Optional[int] = None
    default_frequency: Optional[int] = None
    priority: str = "medium"


@dataclass(frozen=True)
class PlannedTask:
    name: str
    category: str
    due_date: datetime
    cycle_number: int
    source: SourceTask


@dataclass(frozen=True)
class PostingPlan:
    items: list[PlannedTask] = field(default_factory=list)
    skipped: int = 0
    clamped: int = 0

    @property
    def last_due_date(self) -> Optional[datetime]:
        return max((i.due_date for i in self.items), default=None)


def plan_posting_tasks(
    sources: Iterable[SourceTask],
    *,
    anchor: datetime,
    months: int,
    mode: Any = CadenceMode.initial,
    existing_names: Iterable[str] = (),
    end: Optional[datetime] = None,
    first_cycle: int = 1,
) -> PostingPlan:
    """
    Expand source tasks into a dated posting series.

    Each source becomes `frequency * months` copies named "<base> -<n>" with
    n counting up from `first_cycle`, each due on the cadence of cycle n.
    `months` is the contract length for a renewal, or the number of
    remaining cycles when topping up a running series. Social/other assets
    also get one "<base> - Social Communication" task due with the base's
    last copy. Names in `existing_names` are skipped; copies due after `end`
    are clamped.
    """
    m = coerce_mode(mode)
    months = max(1, int(months or 1))
    first_cycle = max(1, int(first_cycle or 1))
    if end is not None:
        end = align_to(end, anchor)
    existing = set(existing_names)
    srcs = list(sources)

    items: list[PlannedTask] = []
    last_due_by_base: dict[str, datetime] = {}
    skipped = 0
    clamped = 0

    # 1) Social Activity + Blog Posting copies
    for src in srcs:
        freq = resolve_frequency(src.required_frequency, src.default_frequency)
        category = resolve_category(src.asset_type)
        base = base_name_of(src.name)
        total = max(1, freq * months)

        dues = islice(iter_due_dates(anchor, m), first_cycle - 1, first_cycle - 1 + total)
        for n, due in dues:
            name = cycle_task_name(base, n)

            if category == CAT_SOCIAL_ACTIVITY and (end is None or due <= end):
                last_due_by_base[base] = due

            if name in existing:
                skipped += 1
                continue
            if end is not None and due > end:
                clamped += 1
                continue
            items.append(PlannedTask(name=name, category=category, due_date=due, cycle_number=n, source=src))
            existing.add(name)

    # 2) one Social Communication task per social/other asset
    for src in srcs:
        if src.asset_type not in (ASSET_SOCIAL_SITE, ASSET_OTHER):
            continue
        base = base_name_of(src.name) or "Social"
        name = social_communication_name(base)
        if name in existing:
            skipped += 1
            continue

        due = last_due_by_base.get(base)
        if due is None:
            freq = resolve_frequency(src.required_frequency, src.default_frequency)
            due = calculate_task_due_date(anchor, first_cycle - 1 + max(1, freq * months), m)
            if end is not None and due > end:
                clamped += 1
                continue
        items.append(
            PlannedTask(
                name=name,
                category=CAT_SOCIAL_COMMUNICATION,
                due_date=due,
                cycle_number=extract_cycle_number(name),
                source=src,
            )
        )
        existing.add(name)

    return PostingPlan(items=items, skipped=skipped, clamped=clamped)
