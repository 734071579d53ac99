from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, Paging, Storage
from microcrm.schemas.client import ClientCreate, ClientRead, ClientStats, ClientUpdate
from microcrm.schemas.common import Message, Page, Pagination

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=Page[ClientRead])
def list_clients(current_user: CurrentUser, storage: Storage, paging: Paging) -> Page[ClientRead]:
    tenant_id = current_user.tenant_id
    clients = storage.list_clients(tenant_id, limit=paging.limit, offset=paging.offset)
    return Page[ClientRead](
        data=[ClientRead.model_validate(item) for item in clients],
        pagination=Pagination.build(paging.page, paging.limit, storage.count_clients(tenant_id)),
    )


@router.get("/stats", response_model=ClientStats)
def client_stats(current_user: CurrentUser, storage: Storage) -> ClientStats:
    return ClientStats(**storage.client_stats(current_user.tenant_id))


@router.get("/{client_id}", response_model=ClientRead)
def get_client(client_id: UUID, current_user: CurrentUser, storage: Storage) -> ClientRead:
    client = storage.get_client(current_user.tenant_id, client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return ClientRead.model_validate(client)


@router.post("", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(payload: ClientCreate, current_user: CurrentUser, storage: Storage) -> ClientRead:
    data = payload.model_dump(exclude_none=True)
    data["name"] = payload.name.strip()
    client = storage.create_client(current_user.tenant_id, data)
    return ClientRead.model_validate(client)


@router.put("/{client_id}", response_model=ClientRead)
def update_client(client_id: UUID, payload: ClientUpdate, current_user: CurrentUser, storage: Storage) -> ClientRead:
    client = storage.update_client(current_user.tenant_id, client_id, payload.model_dump(exclude_unset=True))
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return ClientRead.model_validate(client)


@router.delete("/{client_id}", response_model=Message)
def delete_client(client_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    if not storage.delete_client(current_user.tenant_id, client_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return Message(message="Client deleted successfully")
