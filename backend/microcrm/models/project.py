from __future__ import annotations

from datetime import date
from enum import Enum
from uuid import UUID

from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Project(TenantOwnedModel, table=True):
    __tablename__ = "projects"

    client_id: UUID | None = Field(default=None, foreign_key="clients.id", index=True)
    name: str = Field(max_length=180)
    description: str | None = Field(default=None)
    status: str = Field(default=ProjectStatus.ACTIVE.value)
    budget: float = Field(default=0)
    deadline: date | None = Field(default=None)
    progress: int = Field(default=0)
