from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field

from microcrm.models.base import TenantOwnedModel


class TimeLog(TenantOwnedModel, table=True):
    __tablename__ = "timelogs"

    project_id: UUID | None = Field(default=None, foreign_key="projects.id", index=True)
    description: str | None = Field(default=None)
    start_time: datetime = Field(nullable=False)
    end_time: datetime | None = Field(default=None)
    # seconds
    duration: int = Field(default=0)
    billable: bool = Field(default=True)
