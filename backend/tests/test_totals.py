from __future__ import annotations

from microcrm.schemas.line_item import LineItem
from microcrm.services.totals import compute_totals


def test_totals_for_reference_invoice():
    totals = compute_totals([{"quantity": 2, "price": 50}, {"quantity": 1, "price": 25}], 10)
    assert totals.subtotal == 125
    assert totals.tax_amount == 12.5
    assert totals.total == 137.5


def test_totals_accept_line_item_models():
    items = [LineItem(description="Design", quantity=3, price=100), LineItem(description="Hosting", quantity=1, price=20)]
    totals = compute_totals(items, 0)
    assert totals.as_dict() == {"subtotal": 320.0, "tax_amount": 0.0, "total": 320.0}


def test_missing_quantity_or_price_counts_as_zero():
    totals = compute_totals([{"description": "draft row"}, {"quantity": 2}, {"price": 9}, {"quantity": 1, "price": 4}], 25)
    assert totals.subtotal == 4
    assert totals.tax_amount == 1
    assert totals.total == 5


def test_totals_are_not_rounded():
    totals = compute_totals([{"quantity": 3, "price": 0.1}], 7.5)
    subtotal = 3 * 0.1
    assert totals.subtotal == subtotal
    assert totals.tax_amount == subtotal * 7.5 / 100
    assert totals.total == totals.subtotal + totals.tax_amount


def test_missing_tax_rate_means_no_tax():
    totals = compute_totals([{"quantity": 1, "price": 80}], None)
    assert totals.tax_amount == 0
    assert totals.total == 80
