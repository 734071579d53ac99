from typing import List, TYPE_CHECKING

from sqlmodel import Field, Relationship

from microcrm.models.base import TimestampedModel, UUIDModel

if TYPE_CHECKING:  # pragma: no cover
    from microcrm.models.user import User


class Tenant(UUIDModel, TimestampedModel, table=True):
    """An account owning an isolated set of clients, projects and invoices."""

    __tablename__ = "tenants"

    name: str = Field(index=True)
    company_name: str | None = Field(default=None, max_length=255)
    is_active: bool = Field(default=True)

    users: List["User"] = Relationship(back_populates="tenant")
