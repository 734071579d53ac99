from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from microcrm.models.task import TaskPriority, TaskStatus
from microcrm.schemas.common import TenantOwned


class TaskCreate(BaseModel):
    project_id: UUID | None = None
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None


class TaskUpdate(BaseModel):
    project_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskRead(TenantOwned):
    project_id: UUID | None = None
    title: str
    description: str | None = None
    status: str
    priority: str
    due_date: date | None = None


class TaskStats(BaseModel):
    todo: int
    in_progress: int
    done: int
