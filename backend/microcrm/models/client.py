from __future__ import annotations

from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class Client(TenantOwnedModel, table=True):
    __tablename__ = "clients"

    name: str = Field(max_length=180)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    company: str | None = Field(default=None, max_length=180)
    address: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    # client portal access key, see microcrm.services.portal
    portal_token: str | None = Field(default=None, max_length=64)
