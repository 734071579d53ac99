from __future__ import annotations

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Column, Text
from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class Frequency(str, Enum):
    """How often a recurring template bills.

    The set is closed: any unrecognised value resolves to ``MONTHLY`` rather
    than being rejected, so ``Frequency("fortnightly") is Frequency.MONTHLY``.
    """

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def _missing_(cls, value: object) -> "Frequency":
        if isinstance(value, str):
            for member in cls:
                if member.value == value.strip().lower():
                    return member
        return cls.MONTHLY


class TemplateStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class RecurringInvoice(TenantOwnedModel, table=True):
    """Billing template that periodically materializes draft invoices."""

    __tablename__ = "recurring_invoices"

    client_id: UUID | None = Field(default=None, foreign_key="clients.id", index=True)
    project_id: UUID | None = Field(default=None, foreign_key="projects.id")
    items: str = Field(sa_column=Column(Text, nullable=False))
    tax_rate: float = Field(default=0)
    frequency: str = Field(max_length=16)
    next_invoice_date: date = Field(index=True)
    status: str = Field(default=TemplateStatus.ACTIVE.value, index=True)
    notes: str | None = Field(default=None)
