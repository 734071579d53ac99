from datetime import datetime
from math import ceil
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class Timestamped(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created_at: datetime
    updated_at: datetime | None = None


class IDModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID


class TenantOwned(IDModel, Timestamped):
    tenant_id: UUID


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=ceil(total / limit) if limit else 0)


class Page(BaseModel, Generic[T]):
    data: list[T]
    pagination: Pagination


class Message(BaseModel):
    message: str
