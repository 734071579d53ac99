from __future__ import annotations

import re
from typing import Any, Callable, Mapping
from uuid import UUID

from microcrm.core.config import settings
from microcrm.core.errors import DuplicateInvoiceNumber, InvoiceNumberConflict
from microcrm.core.logging_setup import logger
from microcrm.models.invoice import Invoice
from microcrm.storage.base import BillingStorage


class InvoiceNumberSequencer:
    """Allocates per-tenant invoice numbers of the form ``INV-0001``.

    The next number is derived from the tenant's most recently created
    invoice. Numbering is not locked: two writers may compute the same
    candidate, and the unique ``(tenant_id, invoice_number)`` constraint
    decides which one wins. ``create_with_retry`` recomputes and retries the
    loser a bounded number of times.
    """

    def __init__(
        self,
        storage: BillingStorage,
        *,
        prefix: str | None = None,
        width: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.storage = storage
        self.prefix = settings.invoice_number_prefix if prefix is None else prefix
        self.width = width or settings.invoice_number_width
        self.max_attempts = max_attempts or settings.invoice_number_max_attempts
        self._pattern = re.compile(rf"^{re.escape(self.prefix)}(\d+)$")

    def format(self, sequence: int) -> str:
        return f"{self.prefix}{sequence:0{self.width}d}"

    def next_number(self, tenant_id: UUID, *, collided: bool = False) -> str:
        """Candidate number following the tenant's latest invoice.

        When the latest number is not part of the sequence (a manually
        entered number), or the previous candidate collided, the highest
        sequence number in use is continued instead.
        """
        latest = self.storage.get_latest_invoice(tenant_id)
        if latest is None:
            return self.format(1)
        match = self._pattern.match(latest.invoice_number or "")
        if match and not collided:
            return self.format(int(match.group(1)) + 1)
        return self.format(self._highest_sequence(tenant_id) + 1)

    def _highest_sequence(self, tenant_id: UUID) -> int:
        highest = 0
        for number in self.storage.list_invoice_numbers(tenant_id, self.prefix):
            match = self._pattern.match(number or "")
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def create_with_retry(
        self,
        tenant_id: UUID,
        data: Mapping[str, Any],
        *,
        after_create: Callable[[Invoice], None] | None = None,
    ) -> Invoice:
        """Insert an invoice under a freshly allocated number.

        ``after_create`` runs inside the same transaction, before the commit,
        so additional writes land atomically with the invoice.
        """
        collided = False
        for attempt in range(1, self.max_attempts + 1):
            number = self.next_number(tenant_id, collided=collided)
            try:
                invoice = self.storage.create_invoice(
                    tenant_id, {**data, "invoice_number": number}, commit=False
                )
                if after_create is not None:
                    after_create(invoice)
                self.storage.commit()
            except DuplicateInvoiceNumber:
                collided = True
                self.storage.rollback()
                logger.warning(
                    "Invoice number %s taken for tenant %s (attempt %s/%s)",
                    number,
                    tenant_id,
                    attempt,
                    self.max_attempts,
                )
                continue
            except Exception:
                self.storage.rollback()
                raise
            return invoice
        raise InvoiceNumberConflict(
            f"Could not allocate a unique invoice number after {self.max_attempts} attempts"
        )
