"""Line items and their JSON text representation.

Invoices and recurring templates keep their items as a JSON array in a text
column. ``dump_line_items`` and ``load_line_items`` are the only way across
that boundary: both validate, so malformed stored data fails loudly instead of
leaking ``None`` or partial objects into totals.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from microcrm.core.errors import ValidationFailed


class LineItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str = ""
    quantity: float = Field(gt=0)
    price: float = Field(ge=0)


_line_items = TypeAdapter(list[LineItem])


def _describe(exc: ValidationError) -> str:
    error = exc.errors()[0]
    loc = [part for part in error.get("loc", ()) if part != "__root__"]
    if loc and isinstance(loc[0], int):
        index, fields = loc[0] + 1, [str(part) for part in loc[1:]]
        field = ".".join(fields) or "item"
        if error.get("type") == "missing":
            return f"Line item {index} is missing {field}"
        return f"Line item {index}: {field} {error.get('msg', 'is invalid').lower()}"
    return f"Line items are invalid: {error.get('msg', 'unexpected value')}"


def validate_line_items(items: Iterable[Mapping[str, Any] | LineItem] | None) -> list[LineItem]:
    """Validate items about to be persisted; incomplete items are rejected."""
    if items is None:
        raise ValidationFailed("At least one line item is required")
    raw = [item.model_dump() if isinstance(item, LineItem) else item for item in items]
    if not raw:
        raise ValidationFailed("At least one line item is required")
    try:
        return _line_items.validate_python(raw)
    except ValidationError as exc:
        raise ValidationFailed(_describe(exc)) from exc


def dump_line_items(items: Iterable[Mapping[str, Any] | LineItem]) -> str:
    validated = validate_line_items(items)
    return json.dumps([item.model_dump() for item in validated])


def load_line_items(raw: str | None) -> list[LineItem]:
    if not raw:
        raise ValidationFailed("Stored line items are empty")
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationFailed("Stored line items are not valid JSON") from exc
    if not isinstance(decoded, list):
        raise ValidationFailed("Stored line items must be a list")
    return validate_line_items(decoded)
