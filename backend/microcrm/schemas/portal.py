from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from microcrm.schemas.invoice import InvoiceRead
from microcrm.schemas.project import ProjectRead
from microcrm.schemas.task import TaskRead
from microcrm.schemas.timelog import TimeLogRead


class PortalAccess(BaseModel):
    client_token: str
    portal_url: str


class PortalLoginRequest(BaseModel):
    client_id: str | None = None
    client_token: str | None = None


class PortalClientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str | None = None
    company: str | None = None


class PortalLoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    client: PortalClientRead


class PortalData(BaseModel):
    client: PortalClientRead
    projects: list[ProjectRead]
    tasks: list[TaskRead]
    invoices: list[InvoiceRead]
    timelogs: list[TimeLogRead]
