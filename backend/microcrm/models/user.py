from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlmodel import Field, Relationship

from microcrm.models.base import TimestampedModel, UUIDModel
from microcrm.models.tenant import Tenant


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"


class User(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "users"

    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)

    email: str = Field(index=True, unique=True)
    name: str
    password_hash: str
    role: str = Field(default=UserRole.USER.value)
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(default=None)

    tenant: Tenant = Relationship(back_populates="users")
