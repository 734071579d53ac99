from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, PortalClient, Storage
from microcrm.schemas.common import Message
from microcrm.schemas.portal import PortalAccess, PortalData, PortalLoginRequest, PortalLoginResponse
from microcrm.services.portal import PortalService

router = APIRouter(tags=["portal"])


@router.post("/portal/generate-token/{client_id}", response_model=PortalAccess)
def generate_portal_token(client_id: UUID, current_user: CurrentUser, storage: Storage) -> PortalAccess:
    return PortalService(storage).issue_access(current_user.tenant_id, client_id)


@router.post("/portal/revoke-token/{client_id}", response_model=Message)
def revoke_portal_token(client_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    PortalService(storage).revoke_access(current_user.tenant_id, client_id)
    return Message(message="Portal access revoked")


@router.post("/portal-login", response_model=PortalLoginResponse)
def portal_login(payload: PortalLoginRequest, storage: Storage) -> PortalLoginResponse:
    try:
        return PortalService(storage).login(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@router.get("/portal/data", response_model=PortalData)
def portal_data(client: PortalClient, storage: Storage) -> PortalData:
    return PortalService(storage).data(client)
