# backend/taskengine/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Any

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from .domain.cadence import CadenceMode
from .domain.working_days import as_naive_utc


# -------------------- Cadence --------------------

class DueDateIn(BaseModel):
    anchor: datetime
    # lenient on purpose: 0.5 / -5 normalize to cycle 1
    cycle_number: float = 1
    mode: CadenceMode = CadenceMode.initial


class DueDateOut(BaseModel):
    anchor: datetime
    cycle_number: int
    mode: CadenceMode
    due_date: datetime


class SeriesIn(BaseModel):
    anchor: datetime
    mode: CadenceMode = CadenceMode.initial
    count: Optional[int] = Field(default=None, ge=0)
    end: Optional[datetime] = None

    @model_validator(mode="after")
    def _count_or_end(self):
        if self.count is None and self.end is None:
            raise ValueError("either count or end is required")
        return self


class SeriesItemOut(BaseModel):
    cycle: int
    due_date: datetime


class SeriesOut(BaseModel):
    anchor: datetime
    mode: CadenceMode
    items: list[SeriesItemOut]


class CycleNameOut(BaseModel):
    name: str
    base_name: str
    cycle_number: int


# -------------------- Renewal --------------------

class RenewalIn(BaseModel):
    client_id: int
    renewal_date: datetime
    template_key: Optional[str] = None
    only_type: Optional[str] = None
    include_asset_ids: Optional[list[int]] = None
    exclude_asset_ids: Optional[list[int]] = None
    priority: Optional[str] = None
    # None -> settings.default_cadence_mode
    mode: Optional[CadenceMode] = None
    clamp_to_contract_end: bool = False

    @field_validator("renewal_date")
    @classmethod
    def _naive_utc(cls, v: datetime) -> datetime:
        # stored in naive DateTime columns
        return as_naive_utc(v)


class TaskOut(BaseModel):
    id: int
    name: str
    status: str
    priority: str
    due_date: Optional[datetime] = None
    assignment_id: int
    client_id: int
    asset_id: Optional[int] = None
    category: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="before")
    @classmethod
    def _category_name(cls, data: Any):
        # ORM rows carry a TaskCategory relationship; flatten to its name
        cat = getattr(data, "category", None)
        if cat is not None and not isinstance(cat, str):
            return {
                "id": data.id,
                "name": data.name,
                "status": data.status,
                "priority": data.priority,
                "due_date": data.due_date,
                "assignment_id": data.assignment_id,
                "client_id": data.client_id,
                "asset_id": data.asset_id,
                "category": cat.name,
            }
        return data


class RenewalOut(BaseModel):
    message: str
    created: int
    skipped: int = 0
    clamped: int = 0
    assignment_id: int
    renewal_date: datetime
    due_date: datetime
    renewal_count: int
    tasks: list[TaskOut] = Field(default_factory=list)


class RemainingCyclesOut(BaseModel):
    client_id: int
    mode: CadenceMode
    cycles_to_date: int
    total_cycles: int
    remaining_cycles: int


class RemainingTasksIn(BaseModel):
    # None -> now (UTC)
    today: Optional[datetime] = None
    mode: CadenceMode = CadenceMode.renewal
    template_key: Optional[str] = None
    only_type: Optional[str] = None
    priority: Optional[str] = None

    @field_validator("today")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v) if v is not None else None


class RemainingTasksOut(BaseModel):
    message: str
    created: int
    skipped: int = 0
    assignment_id: Optional[int] = None
    cycles_to_date: int
    total_cycles: int
    future_cycles: int
    tasks: list[TaskOut] = Field(default_factory=list)
