from __future__ import annotations

from datetime import date

import pytest

from microcrm.models.recurring_invoice import Frequency
from microcrm.schemas.recurring_invoice import RecurringInvoiceCreate
from microcrm.services.recurrence import advance

TODAY = date(2024, 1, 15)


@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        (Frequency.WEEKLY, date(2024, 1, 22)),
        (Frequency.BIWEEKLY, date(2024, 1, 29)),
        (Frequency.MONTHLY, date(2024, 2, 15)),
        (Frequency.QUARTERLY, date(2024, 4, 15)),
        (Frequency.YEARLY, date(2025, 1, 15)),
    ],
)
def test_advance_steps_from_today(frequency, expected):
    assert advance(frequency, TODAY) == expected


def test_month_steps_clamp_to_month_end():
    assert advance(Frequency.MONTHLY, date(2023, 1, 31)) == date(2023, 2, 28)
    assert advance(Frequency.MONTHLY, date(2024, 1, 31)) == date(2024, 2, 29)
    assert advance(Frequency.QUARTERLY, date(2024, 11, 30)) == date(2025, 2, 28)
    assert advance(Frequency.YEARLY, date(2024, 2, 29)) == date(2025, 2, 28)


def test_unknown_frequency_falls_back_to_monthly():
    assert Frequency("fortnightly") is Frequency.MONTHLY
    assert Frequency(" Weekly ") is Frequency.WEEKLY
    assert advance("every-other-tuesday", TODAY) == date(2024, 2, 15)


def test_template_schema_stores_fallback_frequency():
    payload = RecurringInvoiceCreate(
        client_id="8a6e0804-2bd0-4672-b79b-d97e8a4c4ff0",
        items=[{"description": "Retainer", "quantity": 1, "price": 500}],
        frequency="sometimes",
        next_invoice_date=TODAY,
    )
    assert payload.frequency is Frequency.MONTHLY
    assert payload.model_dump()["frequency"].value == "monthly"
