from __future__ import annotations

from datetime import date
from enum import Enum
from uuid import UUID

from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(TenantOwnedModel, table=True):
    __tablename__ = "tasks"

    project_id: UUID | None = Field(default=None, foreign_key="projects.id", index=True)
    title: str = Field(max_length=255)
    description: str | None = Field(default=None)
    status: str = Field(default=TaskStatus.TODO.value)
    priority: str = Field(default=TaskPriority.MEDIUM.value)
    due_date: date | None = Field(default=None)
