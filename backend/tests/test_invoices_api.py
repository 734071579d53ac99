from __future__ import annotations

from uuid import uuid4

from fastapi import status

from microcrm.core.config import settings
from microcrm.services.recurrence import utc_today

API = settings.api_prefix
ITEMS = [{"description": "Design", "quantity": 2, "price": 50}, {"description": "Hosting", "quantity": 1, "price": 25}]


def _client_id(client, headers) -> str:
    return client.post(f"{API}/clients", json={"name": "Acme"}, headers=headers).json()["id"]


def _create_invoice(client, headers, client_id, **extra):
    payload = {"client_id": client_id, "items": ITEMS, "tax_rate": 10, **extra}
    return client.post(f"{API}/invoices", json=payload, headers=headers)


def test_create_invoice_computes_totals_and_number(client, auth):
    client_id = _client_id(client, auth)
    assert client.get(f"{API}/invoices/next-number", headers=auth).json() == {"invoice_number": "INV-0001"}

    response = _create_invoice(client, auth, client_id)

    assert response.status_code == status.HTTP_201_CREATED, response.json()
    invoice = response.json()
    assert invoice["invoice_number"] == "INV-0001"
    assert invoice["status"] == "draft"
    assert (invoice["subtotal"], invoice["tax_amount"], invoice["total"]) == (125, 12.5, 137.5)
    assert invoice["items"][0] == {"description": "Design", "quantity": 2.0, "price": 50.0}
    assert invoice["issue_date"] == utc_today().isoformat()
    assert client.get(f"{API}/invoices/next-number", headers=auth).json() == {"invoice_number": "INV-0002"}


def test_back_to_back_invoices_get_distinct_numbers(client, auth):
    client_id = _client_id(client, auth)
    numbers = [_create_invoice(client, auth, client_id).json()["invoice_number"] for _ in range(3)]
    assert numbers == ["INV-0001", "INV-0002", "INV-0003"]


def test_invoice_requires_complete_items(client, auth):
    client_id = _client_id(client, auth)

    missing_price = _create_invoice(client, auth, client_id, items=[{"description": "x", "quantity": 1}])
    empty = _create_invoice(client, auth, client_id, items=[])

    assert missing_price.status_code == status.HTTP_400_BAD_REQUEST
    assert "price" in missing_price.json()["error"]
    assert empty.status_code == status.HTTP_400_BAD_REQUEST
    assert client.get(f"{API}/invoices", headers=auth).json()["pagination"]["total"] == 0


def test_invoice_requires_own_client(client, auth):
    response = _create_invoice(client, auth, str(uuid4()))
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Client not found"}


def test_update_recomputes_totals_and_keeps_status(client, auth):
    invoice = _create_invoice(client, auth, _client_id(client, auth)).json()
    client.patch(f"{API}/invoices/{invoice['id']}/status", json={"status": "sent"}, headers=auth)

    response = client.put(
        f"{API}/invoices/{invoice['id']}",
        json={"items": [{"description": "Audit", "quantity": 4, "price": 10}], "tax_rate": 0},
        headers=auth,
    )

    updated = response.json()
    assert (updated["subtotal"], updated["tax_amount"], updated["total"]) == (40, 0, 40)
    assert updated["status"] == "sent"
    assert updated["invoice_number"] == invoice["invoice_number"]

    rate_only = client.put(f"{API}/invoices/{invoice['id']}", json={"tax_rate": 50}, headers=auth).json()
    assert (rate_only["subtotal"], rate_only["tax_amount"], rate_only["total"]) == (40, 20, 60)


def test_status_transitions_and_stats(client, auth):
    client_id = _client_id(client, auth)
    paid = _create_invoice(client, auth, client_id).json()
    overdue = _create_invoice(client, auth, client_id).json()
    _create_invoice(client, auth, client_id)

    client.patch(f"{API}/invoices/{paid['id']}/status", json={"status": "paid"}, headers=auth)
    client.patch(f"{API}/invoices/{overdue['id']}/status", json={"status": "overdue"}, headers=auth)
    bad = client.patch(f"{API}/invoices/{paid['id']}/status", json={"status": "void"}, headers=auth)
    assert bad.status_code == status.HTTP_400_BAD_REQUEST

    stats = client.get(f"{API}/invoices/stats", headers=auth).json()
    assert stats == {
        "total": 3,
        "paid": 1,
        "paid_amount": 137.5,
        "pending": 1,
        "pending_amount": 137.5,
        "overdue": 1,
        "overdue_amount": 137.5,
    }


def test_delete_invoice(client, auth):
    invoice = _create_invoice(client, auth, _client_id(client, auth)).json()
    assert client.delete(f"{API}/invoices/{invoice['id']}", headers=auth).status_code == status.HTTP_200_OK
    missing = client.delete(f"{API}/invoices/{invoice['id']}", headers=auth)
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json() == {"error": "Invoice not found"}
