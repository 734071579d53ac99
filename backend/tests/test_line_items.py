from __future__ import annotations

import json

import pytest

from microcrm.core.errors import ValidationFailed
from microcrm.schemas.line_item import LineItem, dump_line_items, load_line_items, validate_line_items


def test_stored_items_are_restored_with_every_field():
    raw = dump_line_items([{"description": "Consulting", "quantity": 1.5, "price": 120}])
    assert json.loads(raw) == [{"description": "Consulting", "quantity": 1.5, "price": 120.0}]
    assert load_line_items(raw) == [LineItem(description="Consulting", quantity=1.5, price=120)]


def test_description_is_optional():
    assert validate_line_items([{"quantity": 1, "price": 10}])[0].description == ""


@pytest.mark.parametrize("items", [None, []])
def test_empty_items_are_rejected(items):
    with pytest.raises(ValidationFailed, match="At least one line item"):
        validate_line_items(items)


def test_missing_price_is_reported_with_position():
    with pytest.raises(ValidationFailed) as excinfo:
        dump_line_items([{"description": "ok", "quantity": 1, "price": 5}, {"description": "broken", "quantity": 2}])
    assert excinfo.value.message == "Line item 2 is missing price"


def test_non_positive_quantity_is_rejected():
    with pytest.raises(ValidationFailed, match="Line item 1: quantity"):
        validate_line_items([{"quantity": 0, "price": 5}])


@pytest.mark.parametrize("raw", ["", "not json", '{"quantity": 1}', "[]", '[{"quantity": 1}]'])
def test_malformed_stored_items_fail_loudly(raw):
    with pytest.raises(ValidationFailed):
        load_line_items(raw)
