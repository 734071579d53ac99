from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from microcrm.models.project import ProjectStatus
from microcrm.schemas.common import TenantOwned


class ProjectBase(BaseModel):
    client_id: UUID | None = None
    description: str | None = None
    budget: float | None = Field(default=None, ge=0)
    deadline: date | None = None


class ProjectCreate(ProjectBase):
    name: str = Field(min_length=1, max_length=180)
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(ProjectBase):
    name: str | None = Field(default=None, min_length=1, max_length=180)
    status: ProjectStatus | None = None
    progress: int | None = Field(default=None, ge=0, le=100)


class ProjectRead(TenantOwned):
    client_id: UUID | None = None
    client_name: str | None = None
    name: str
    description: str | None = None
    status: str
    budget: float
    deadline: date | None = None
    progress: int


class ProjectStats(BaseModel):
    active: int
    completed: int
    total_budget: float
