from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from microcrm.schemas.line_item import LineItem


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: float
    tax_amount: float
    total: float

    def as_dict(self) -> dict[str, float]:
        return {"subtotal": self.subtotal, "tax_amount": self.tax_amount, "total": self.total}


def _amount(item: Mapping[str, Any] | LineItem, field: str) -> float:
    value = getattr(item, field, None) if isinstance(item, LineItem) else item.get(field)
    return float(value or 0)


def compute_totals(items: Iterable[Mapping[str, Any] | LineItem], tax_rate: float | None) -> InvoiceTotals:
    """Sum quantity * price over the items and apply ``tax_rate`` percent.

    A missing quantity or price counts as zero. Values are not rounded.
    """
    subtotal = sum((_amount(item, "quantity") * _amount(item, "price") for item in items), 0.0)
    tax_amount = subtotal * float(tax_rate or 0) / 100
    return InvoiceTotals(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)
