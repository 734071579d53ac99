from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from microcrm.schemas.common import TenantOwned


class TimerStart(BaseModel):
    project_id: UUID | None = None
    description: str | None = None
    billable: bool = True


class TimeLogCreate(BaseModel):
    project_id: UUID | None = None
    description: str | None = None
    duration: int = Field(gt=0, description="Seconds")
    start_time: datetime | None = None
    billable: bool = True


class TimeLogUpdate(BaseModel):
    project_id: UUID | None = None
    description: str | None = None
    duration: int | None = Field(default=None, ge=0)
    billable: bool | None = None


class TimeLogRead(TenantOwned):
    project_id: UUID | None = None
    description: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    duration: int
    billable: bool


class TimeLogStats(BaseModel):
    total: int
    this_week: int
    billable: int
