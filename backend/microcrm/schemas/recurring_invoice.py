from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from microcrm.models.recurring_invoice import Frequency, TemplateStatus
from microcrm.schemas.common import TenantOwned
from microcrm.schemas.line_item import LineItem, load_line_items


class RecurringInvoiceCreate(BaseModel):
    client_id: UUID
    project_id: UUID | None = None
    items: list[LineItem] = Field(min_length=1)
    tax_rate: float = Field(default=0, ge=0)
    frequency: Frequency
    next_invoice_date: date
    status: TemplateStatus = TemplateStatus.ACTIVE
    notes: str | None = None

    @field_validator("frequency", mode="before")
    @classmethod
    def coerce_frequency(cls, value: object) -> object:
        if value is None or isinstance(value, Frequency):
            return value
        return Frequency(value)


class RecurringInvoiceUpdate(BaseModel):
    client_id: UUID | None = None
    project_id: UUID | None = None
    items: list[LineItem] | None = Field(default=None, min_length=1)
    tax_rate: float | None = Field(default=None, ge=0)
    frequency: Frequency | None = None
    next_invoice_date: date | None = None
    status: TemplateStatus | None = None
    notes: str | None = None

    @field_validator("frequency", mode="before")
    @classmethod
    def coerce_frequency(cls, value: object) -> object:
        if value is None or isinstance(value, Frequency):
            return value
        return Frequency(value)


class RecurringInvoiceRead(TenantOwned):
    client_id: UUID | None = None
    project_id: UUID | None = None
    items: list[LineItem]
    tax_rate: float
    frequency: str
    next_invoice_date: date
    status: str
    notes: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def decode_items(cls, value: object) -> object:
        if isinstance(value, str):
            return load_line_items(value)
        return value
