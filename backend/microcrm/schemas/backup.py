"""Records accepted when restoring a tenant backup.

Each schema takes one entry of the matching ``/backup`` section. Read-only
fields (``tenant_id``, ``updated_at``, computed names) are ignored.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from microcrm.models.invoice import InvoiceStatus
from microcrm.models.project import ProjectStatus
from microcrm.models.task import TaskPriority, TaskStatus
from microcrm.schemas.line_item import LineItem, load_line_items


def _naive_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RestoreRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID | None = None
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime | None) -> datetime | None:
        return _naive_utc(value)


class ClientRecord(RestoreRecord):
    name: str = Field(min_length=1, max_length=180)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    company: str | None = Field(default=None, max_length=180)
    address: str | None = None
    notes: str | None = None


class ProjectRecord(RestoreRecord):
    client_id: UUID | None = None
    name: str = Field(min_length=1, max_length=180)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    budget: float | None = Field(default=None, ge=0)
    deadline: date | None = None
    progress: int | None = Field(default=None, ge=0, le=100)


class TaskRecord(RestoreRecord):
    project_id: UUID | None = None
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None


class InvoiceRecord(RestoreRecord):
    client_id: UUID | None = None
    project_id: UUID | None = None
    invoice_number: str = Field(min_length=1, max_length=32)
    items: list[LineItem] = Field(min_length=1)
    subtotal: float = 0
    tax_rate: float = Field(default=0, ge=0)
    tax_amount: float = 0
    total: float = 0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def decode_items(cls, value: object) -> object:
        if isinstance(value, str):
            return load_line_items(value)
        return value


class TimeLogRecord(RestoreRecord):
    project_id: UUID | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    duration: int | None = Field(default=None, ge=0)
    billable: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, value: datetime | None) -> datetime | None:
        return _naive_utc(value)


class RestoreResults(BaseModel):
    clients: int = 0
    projects: int = 0
    tasks: int = 0
    invoices: int = 0
    timelogs: int = 0


class RestoreResponse(BaseModel):
    message: str
    results: RestoreResults
