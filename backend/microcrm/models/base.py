from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp, the form both SQLite and PostgreSQL columns round-trip."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampedModel(SQLModel):
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
    updated_at: datetime | None = Field(default=None, nullable=True)

    def touch(self) -> None:
        self.updated_at = utcnow()


class UUIDModel(SQLModel):
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)


class TenantOwnedModel(UUIDModel, TimestampedModel):
    tenant_id: UUID = Field(foreign_key="tenants.id", index=True)
