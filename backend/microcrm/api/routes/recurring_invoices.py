from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from microcrm.api.deps import CurrentUser, Storage
from microcrm.core.errors import ValidationFailed
from microcrm.schemas.common import Message
from microcrm.schemas.invoice import InvoiceRead
from microcrm.schemas.recurring_invoice import (
    RecurringInvoiceCreate,
    RecurringInvoiceRead,
    RecurringInvoiceUpdate,
)
from microcrm.services.recurrence import utc_today
from microcrm.services.recurring import RecurringInvoiceGenerator
from microcrm.storage.base import SQLStorage

router = APIRouter(prefix="/recurring-invoices", tags=["recurring-invoices"])


def _check_references(storage: SQLStorage, tenant_id: UUID, client_id: UUID | None, project_id: UUID | None) -> None:
    if client_id is not None and storage.get_client(tenant_id, client_id) is None:
        raise ValidationFailed("Client not found")
    if project_id is not None and storage.get_project(tenant_id, project_id) is None:
        raise ValidationFailed("Project not found")


@router.get("", response_model=list[RecurringInvoiceRead])
def list_recurring_invoices(current_user: CurrentUser, storage: Storage) -> list[RecurringInvoiceRead]:
    templates = storage.list_templates(current_user.tenant_id)
    return [RecurringInvoiceRead.model_validate(item) for item in templates]


@router.get("/due", response_model=list[RecurringInvoiceRead])
def list_due_recurring_invoices(current_user: CurrentUser, storage: Storage) -> list[RecurringInvoiceRead]:
    templates = storage.get_due_templates(current_user.tenant_id, utc_today())
    return [RecurringInvoiceRead.model_validate(item) for item in templates]


@router.get("/{template_id}", response_model=RecurringInvoiceRead)
def get_recurring_invoice(template_id: UUID, current_user: CurrentUser, storage: Storage) -> RecurringInvoiceRead:
    template = storage.get_template(current_user.tenant_id, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring invoice not found")
    return RecurringInvoiceRead.model_validate(template)


@router.post("", response_model=RecurringInvoiceRead, status_code=status.HTTP_201_CREATED)
def create_recurring_invoice(
    payload: RecurringInvoiceCreate, current_user: CurrentUser, storage: Storage
) -> RecurringInvoiceRead:
    _check_references(storage, current_user.tenant_id, payload.client_id, payload.project_id)
    template = storage.create_template(current_user.tenant_id, payload.model_dump())
    return RecurringInvoiceRead.model_validate(template)


@router.put("/{template_id}", response_model=RecurringInvoiceRead)
def update_recurring_invoice(
    template_id: UUID, payload: RecurringInvoiceUpdate, current_user: CurrentUser, storage: Storage
) -> RecurringInvoiceRead:
    changes = payload.model_dump(exclude_unset=True)
    for field, value in list(changes.items()):
        if value is None and field not in {"project_id", "notes"}:
            changes.pop(field)
    _check_references(storage, current_user.tenant_id, changes.get("client_id"), changes.get("project_id"))
    template = storage.update_template(current_user.tenant_id, template_id, changes)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring invoice not found")
    return RecurringInvoiceRead.model_validate(template)


@router.delete("/{template_id}", response_model=Message)
def delete_recurring_invoice(template_id: UUID, current_user: CurrentUser, storage: Storage) -> Message:
    if not storage.delete_template(current_user.tenant_id, template_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring invoice not found")
    return Message(message="Recurring invoice deleted successfully")


@router.post("/{template_id}/generate", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def generate_invoice(template_id: UUID, current_user: CurrentUser, storage: Storage) -> InvoiceRead:
    invoice = RecurringInvoiceGenerator(storage).generate_one(template_id, current_user.tenant_id)
    return InvoiceRead.model_validate(invoice)
