from __future__ import annotations

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Column, Text, UniqueConstraint
from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class Invoice(TenantOwnedModel, table=True):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),)

    client_id: UUID | None = Field(default=None, foreign_key="clients.id", index=True)
    project_id: UUID | None = Field(default=None, foreign_key="projects.id")
    invoice_number: str = Field(max_length=32)
    # JSON snapshot of the line items, see microcrm.schemas.line_item
    items: str = Field(sa_column=Column(Text, nullable=False))
    subtotal: float = Field(default=0)
    tax_rate: float = Field(default=0)
    tax_amount: float = Field(default=0)
    total: float = Field(default=0)
    status: str = Field(default=InvoiceStatus.DRAFT.value)
    issue_date: date | None = Field(default=None)
    due_date: date | None = Field(default=None)
    notes: str | None = Field(default=None)
