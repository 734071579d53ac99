"""Read-only client portal.

A tenant user issues a client an access key; the client exchanges it for a
portal session token (role ``client``) that only opens ``/portal/data``.
Regenerating or revoking the key invalidates sessions issued for the old one.
"""

from __future__ import annotations

import hashlib
import secrets
from urllib.parse import urlencode
from uuid import UUID

from microcrm.core.config import settings
from microcrm.core.errors import NotFound, ValidationFailed
from microcrm.core.logging_setup import logger as base_logger
from microcrm.models.client import Client
from microcrm.schemas.invoice import InvoiceRead
from microcrm.schemas.portal import (
    PortalAccess,
    PortalClientRead,
    PortalData,
    PortalLoginRequest,
    PortalLoginResponse,
)
from microcrm.schemas.project import ProjectRead
from microcrm.schemas.task import TaskRead
from microcrm.schemas.timelog import TimeLogRead
from microcrm.storage.base import SQLStorage
from microcrm.utils.security import create_access_token

logger = base_logger.getChild("portal")

PORTAL_ROLE = "client"


def portal_fingerprint(portal_token: str) -> str:
    return hashlib.sha256(portal_token.encode("utf-8")).hexdigest()[:16]


class PortalService:
    def __init__(self, storage: SQLStorage) -> None:
        self.storage = storage

    def _client(self, tenant_id: UUID, client_id: UUID) -> Client:
        client = self.storage.get_client(tenant_id, client_id)
        if client is None:
            raise NotFound("Client not found")
        return client

    def issue_access(self, tenant_id: UUID, client_id: UUID) -> PortalAccess:
        self._client(tenant_id, client_id)
        portal_token = secrets.token_urlsafe(32)
        self.storage.update_client(tenant_id, client_id, {"portal_token": portal_token})
        query = urlencode({"client": str(client_id), "token": portal_token})
        logger.info("Portal access issued for client %s of tenant %s", client_id, tenant_id)
        return PortalAccess(client_token=portal_token, portal_url=f"{settings.app_url.rstrip('/')}/portal?{query}")

    def revoke_access(self, tenant_id: UUID, client_id: UUID) -> None:
        self._client(tenant_id, client_id)
        self.storage.update_client(tenant_id, client_id, {"portal_token": None})
        logger.info("Portal access revoked for client %s of tenant %s", client_id, tenant_id)

    def login(self, payload: PortalLoginRequest) -> PortalLoginResponse:
        if not payload.client_id or not payload.client_token:
            raise ValidationFailed("Client ID and token are required")
        try:
            client_id = UUID(payload.client_id)
        except ValueError as exc:
            raise ValueError("Invalid client credentials") from exc

        client = self.storage.find_portal_client(client_id)
        if (
            client is None
            or not client.portal_token
            or not secrets.compare_digest(client.portal_token.encode("utf-8"), payload.client_token.encode("utf-8"))
        ):
            raise ValueError("Invalid client credentials")

        token = create_access_token(
            str(client.id),
            str(client.tenant_id),
            {"role": PORTAL_ROLE, "portal": portal_fingerprint(client.portal_token)},
        )
        return PortalLoginResponse(token=token, client=PortalClientRead.model_validate(client))

    def data(self, client: Client) -> PortalData:
        """Projects, tasks, invoices and time logs belonging to ``client``."""
        tenant_id = client.tenant_id
        projects = self.storage.list_projects_by_client(tenant_id, client.id)
        project_ids = [project.id for project in projects]
        return PortalData(
            client=PortalClientRead.model_validate(client),
            projects=[
                ProjectRead.model_validate(project).model_copy(update={"client_name": client.name})
                for project in projects
            ],
            tasks=[TaskRead.model_validate(task) for task in self.storage.list_tasks_by_projects(tenant_id, project_ids)],
            invoices=[
                InvoiceRead.model_validate(invoice)
                for invoice in self.storage.list_invoices_by_client(tenant_id, client.id)
            ],
            timelogs=[
                TimeLogRead.model_validate(timelog)
                for timelog in self.storage.list_timelogs_by_projects(tenant_id, project_ids)
            ],
        )
