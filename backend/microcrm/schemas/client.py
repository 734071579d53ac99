from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from microcrm.schemas.common import TenantOwned


class ClientBase(BaseModel):
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=32)
    company: str | None = Field(default=None, max_length=180)
    address: str | None = None
    notes: str | None = None


class ClientCreate(ClientBase):
    name: str = Field(min_length=1, max_length=180)


class ClientUpdate(ClientBase):
    name: str | None = Field(default=None, min_length=1, max_length=180)


class ClientRead(TenantOwned, ClientBase):
    name: str
    email: str | None = None


class ClientStats(BaseModel):
    total: int
