from uuid import UUID

from fastapi import APIRouter, status

from microcrm.api.deps import CurrentUser, Paging, Storage
from microcrm.schemas.common import Message, Page, Pagination
from microcrm.schemas.invoice import (
    InvoiceCreate,
    InvoiceRead,
    InvoiceStats,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    NextInvoiceNumber,
)
from microcrm.services.invoice import InvoiceService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=Page[InvoiceRead])
def list_invoices(current_user: CurrentUser, storage: Storage, paging: Paging) -> Page[InvoiceRead]:
    tenant_id = current_user.tenant_id
    invoices = storage.list_invoices(tenant_id, limit=paging.limit, offset=paging.offset)
    return Page[InvoiceRead](
        data=[InvoiceRead.model_validate(item) for item in invoices],
        pagination=Pagination.build(paging.page, paging.limit, storage.count_invoices(tenant_id)),
    )


@router.get("/stats", response_model=InvoiceStats)
def invoice_stats(current_user: CurrentUser, storage: Storage) -> InvoiceStats:
    return InvoiceStats(**InvoiceService(storage).stats(current_user.tenant_id))


@router.get("/next-number", response_model=NextInvoiceNumber)
def next_invoice_number(current_user: CurrentUser, storage: Storage) -> NextInvoiceNumber:
    return NextInvoiceNumber(invoice_number=InvoiceService(storage).next_number(current_user.tenant_id))


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(invoice_id: UUID, current_user: CurrentUser, storage: Storage) -> InvoiceRead:
    invoice = InvoiceService(storage).get_invoice(current_user.tenant_id, invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(payload: InvoiceCreate, current_user: CurrentUser, storage: Storage) -> InvoiceRead:
    invoice = InvoiceService(storage).create_invoice(current_user.tenant_id, payload)
    return InvoiceRead.model_validate(invoice)


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(invoice_id: UUID, payload: InvoiceUpdate, current_user: CurrentUser, storage: Storage) -> InvoiceRead:
    invoice = InvoiceService(storage).update_invoice(current_user.tenant_id, invoice_id, payload)
    return InvoiceRead.model_validate(invoice)


@router.patch("/{invoice_id}/status", response_model=InvoiceRead)
def update_invoice_status(
    invoice_id: UUID, payload: InvoiceStatusUpdate, current_user: CurrentUser, storage: Storage
) -> InvoiceRead:
    invoice = InvoiceService(storage).update_status(current_user.tenant_id, invoice_id, payload.status)
    return InvoiceRead.model_validate(invoice)


@router.delete("/{invoice_id}", response_model=Message)
def delete_invoice(invoice_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    InvoiceService(storage).delete_invoice(current_user.tenant_id, invoice_id)
    return Message(message="Invoice deleted successfully")
