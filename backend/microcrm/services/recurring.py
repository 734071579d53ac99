"""Materialization of invoices from recurring templates.

``RecurringInvoiceGenerator.run_once`` is the batch pass driven by the
scheduler; ``generate_one`` serves the interactive "generate now" action.
Both create the invoice and advance the template inside one transaction and
share the numbering retry of :class:`InvoiceNumberSequencer`.
"""

from __future__ import annotations

from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from datetime import date
from typing import Callable
from uuid import UUID

from microcrm.core.errors import NotFound, TemplateInactive, ValidationFailed
from microcrm.core.logging_setup import logger as base_logger
from microcrm.models.invoice import Invoice, InvoiceStatus
from microcrm.models.recurring_invoice import Frequency, RecurringInvoice, TemplateStatus
from microcrm.schemas.line_item import load_line_items
from microcrm.services.numbering import InvoiceNumberSequencer
from microcrm.services.recurrence import advance, utc_today
from microcrm.services.totals import compute_totals
from microcrm.storage.base import BillingStorage

logger = base_logger.getChild("recurring")

StorageFactory = Callable[[], AbstractContextManager[BillingStorage]]


@dataclass
class RunReport:
    generated: list[str] = field(default_factory=list)
    failed_templates: list[UUID] = field(default_factory=list)
    failed_tenants: list[UUID] = field(default_factory=list)


class RecurringInvoiceGenerator:
    def __init__(
        self,
        storage: BillingStorage | None = None,
        *,
        storage_factory: StorageFactory | None = None,
        today: Callable[[], date] = utc_today,
        max_attempts: int | None = None,
    ) -> None:
        if storage is None and storage_factory is None:
            raise ValueError("Either storage or storage_factory is required")
        self._storage = storage
        self._storage_factory = storage_factory
        self.today = today
        self.max_attempts = max_attempts

    def _open(self) -> AbstractContextManager[BillingStorage]:
        if self._storage_factory is not None:
            return self._storage_factory()
        return nullcontext(self._storage)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------
    def run_once(self) -> RunReport:
        report = RunReport()
        with self._open() as storage:
            tenant_ids = storage.list_tenant_ids()
            for tenant_id in tenant_ids:
                try:
                    self._run_tenant(storage, tenant_id, report)
                except Exception:
                    storage.rollback()
                    report.failed_tenants.append(tenant_id)
                    logger.exception("Recurring billing failed for tenant %s", tenant_id)
        if report.generated or report.failed_templates or report.failed_tenants:
            logger.info(
                "Recurring billing run: %s generated, %s template failures, %s tenant failures",
                len(report.generated),
                len(report.failed_templates),
                len(report.failed_tenants),
            )
        return report

    def _run_tenant(self, storage: BillingStorage, tenant_id: UUID, report: RunReport) -> None:
        today = self.today()
        # a rollback expires loaded templates, so each one is reloaded by id
        template_ids = [template.id for template in storage.get_due_templates(tenant_id, today)]
        for template_id in template_ids:
            try:
                template = storage.get_template(tenant_id, template_id)
                if template is None or template.status != TemplateStatus.ACTIVE.value:
                    logger.info("Template %s of tenant %s is gone or paused, skipping", template_id, tenant_id)
                    continue
                invoice = self._generate(storage, template, today)
            except Exception:
                storage.rollback()
                report.failed_templates.append(template_id)
                logger.exception(
                    "Recurring invoice generation failed for tenant %s template %s", tenant_id, template_id
                )
                continue
            report.generated.append(invoice.invoice_number)

    # ------------------------------------------------------------------
    # On demand
    # ------------------------------------------------------------------
    def generate_one(self, template_id: UUID, tenant_id: UUID) -> Invoice:
        with self._open() as storage:
            template = storage.get_template(tenant_id, template_id)
            if template is None:
                raise NotFound("Recurring invoice not found")
            if template.status != TemplateStatus.ACTIVE.value:
                raise TemplateInactive("Recurring invoice is not active")
            return self._generate(storage, template, self.today())

    def _generate(self, storage: BillingStorage, template: RecurringInvoice, today: date) -> Invoice:
        if template.client_id is None:
            raise ValidationFailed("Recurring invoice has no client")
        tenant_id, template_id = template.tenant_id, template.id
        items = load_line_items(template.items)
        totals = compute_totals(items, template.tax_rate)
        next_date = advance(Frequency(template.frequency), today)
        data = {
            "client_id": template.client_id,
            "project_id": template.project_id,
            "items": items,
            "tax_rate": template.tax_rate,
            "status": InvoiceStatus.DRAFT.value,
            "issue_date": today,
            "due_date": None,
            "notes": template.notes,
            **totals.as_dict(),
        }

        def advance_template(_: Invoice) -> None:
            storage.update_next_invoice_date(tenant_id, template_id, next_date, commit=False)

        sequencer = InvoiceNumberSequencer(storage, max_attempts=self.max_attempts)
        invoice = sequencer.create_with_retry(tenant_id, data, after_create=advance_template)
        logger.info(
            "Generated invoice %s for tenant %s from template %s, next due %s",
            invoice.invoice_number,
            tenant_id,
            template_id,
            next_date.isoformat(),
        )
        return invoice
