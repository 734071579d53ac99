from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from microcrm.models.invoice import InvoiceStatus
from microcrm.schemas.common import TenantOwned
from microcrm.schemas.line_item import LineItem, load_line_items


class InvoiceCreate(BaseModel):
    client_id: UUID
    project_id: UUID | None = None
    items: list[LineItem] = Field(min_length=1)
    tax_rate: float = Field(default=0, ge=0)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None


class InvoiceUpdate(BaseModel):
    client_id: UUID | None = None
    project_id: UUID | None = None
    items: list[LineItem] | None = Field(default=None, min_length=1)
    tax_rate: float | None = Field(default=None, ge=0)
    status: InvoiceStatus | None = None
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceRead(TenantOwned):
    client_id: UUID | None = None
    project_id: UUID | None = None
    invoice_number: str
    items: list[LineItem]
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float
    status: str
    issue_date: date | None = None
    due_date: date | None = None
    notes: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def decode_items(cls, value: object) -> object:
        if isinstance(value, str):
            return load_line_items(value)
        return value


class NextInvoiceNumber(BaseModel):
    invoice_number: str


class InvoiceStats(BaseModel):
    total: int
    paid: int
    paid_amount: float
    pending: int
    pending_amount: float
    overdue: int
    overdue_amount: float
