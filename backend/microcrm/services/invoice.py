from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from microcrm.core.errors import NotFound, ValidationFailed
from microcrm.core.logging_setup import logger
from microcrm.models.invoice import Invoice, InvoiceStatus
from microcrm.schemas.invoice import InvoiceCreate, InvoiceUpdate
from microcrm.schemas.line_item import load_line_items, validate_line_items
from microcrm.services.numbering import InvoiceNumberSequencer
from microcrm.services.recurrence import utc_today
from microcrm.services.totals import compute_totals
from microcrm.storage.base import SQLStorage


class InvoiceService:
    def __init__(self, storage: SQLStorage, sequencer: InvoiceNumberSequencer | None = None) -> None:
        self.storage = storage
        self.sequencer = sequencer or InvoiceNumberSequencer(storage)

    def _require_client(self, tenant_id: UUID, client_id: UUID | None) -> None:
        if client_id is None or self.storage.get_client(tenant_id, client_id) is None:
            raise ValidationFailed("Client not found")

    def _require_project(self, tenant_id: UUID, project_id: UUID | None) -> None:
        if project_id is not None and self.storage.get_project(tenant_id, project_id) is None:
            raise ValidationFailed("Project not found")

    def get_invoice(self, tenant_id: UUID, invoice_id: UUID) -> Invoice:
        invoice = self.storage.get_invoice(tenant_id, invoice_id)
        if invoice is None:
            raise NotFound("Invoice not found")
        return invoice

    def next_number(self, tenant_id: UUID) -> str:
        return self.sequencer.next_number(tenant_id)

    def create_invoice(self, tenant_id: UUID, payload: InvoiceCreate) -> Invoice:
        self._require_client(tenant_id, payload.client_id)
        self._require_project(tenant_id, payload.project_id)
        items = validate_line_items(payload.items)
        totals = compute_totals(items, payload.tax_rate)
        data: dict[str, Any] = {
            "client_id": payload.client_id,
            "project_id": payload.project_id,
            "items": items,
            "tax_rate": payload.tax_rate,
            "status": payload.status,
            "issue_date": payload.issue_date or utc_today(),
            "due_date": payload.due_date,
            "notes": payload.notes,
            **totals.as_dict(),
        }
        invoice = self.sequencer.create_with_retry(tenant_id, data)
        logger.info("Invoice %s created for tenant %s", invoice.invoice_number, tenant_id)
        return invoice

    def update_invoice(self, tenant_id: UUID, invoice_id: UUID, payload: InvoiceUpdate) -> Invoice:
        invoice = self.get_invoice(tenant_id, invoice_id)
        changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
        if "client_id" in changes:
            self._require_client(tenant_id, changes["client_id"])
        if changes.get("project_id") is not None:
            self._require_project(tenant_id, changes["project_id"])
        if changes.get("status") is None:
            changes.pop("status", None)
        if "items" in changes or "tax_rate" in changes:
            items = validate_line_items(changes["items"]) if changes.get("items") else load_line_items(invoice.items)
            tax_rate = changes.get("tax_rate")
            if tax_rate is None:
                tax_rate = invoice.tax_rate
            changes.update(items=items, tax_rate=tax_rate, **compute_totals(items, tax_rate).as_dict())
        updated = self.storage.update_invoice(tenant_id, invoice_id, changes)
        if updated is None:
            raise NotFound("Invoice not found")
        return updated

    def update_status(self, tenant_id: UUID, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        self.get_invoice(tenant_id, invoice_id)
        updated = self.storage.update_invoice(tenant_id, invoice_id, {"status": status})
        if updated is None:
            raise NotFound("Invoice not found")
        logger.info("Invoice %s moved to %s", invoice_id, status.value)
        return updated

    def delete_invoice(self, tenant_id: UUID, invoice_id: UUID) -> None:
        if not self.storage.delete_invoice(tenant_id, invoice_id):
            raise NotFound("Invoice not found")

    def stats(self, tenant_id: UUID) -> Mapping[str, Any]:
        return self.storage.invoice_stats(tenant_id)
