from __future__ import annotations

import csv
import io
from uuid import uuid4

from fastapi import status

from microcrm.core.config import settings
from tests.conftest import auth_headers, register

API = settings.api_prefix


def _seed(client, headers) -> None:
    client_id = client.post(f"{API}/clients", json={"name": "Acme, Inc."}, headers=headers).json()["id"]
    client.post(
        f"{API}/invoices",
        json={"client_id": client_id, "items": [{"description": "Work", "quantity": 2, "price": 30}]},
        headers=headers,
    )
    client.post(
        f"{API}/recurring-invoices",
        json={
            "client_id": client_id,
            "items": [{"description": "Retainer", "quantity": 1, "price": 100}],
            "frequency": "yearly",
            "next_invoice_date": "2030-01-01",
        },
        headers=headers,
    )


def test_backup_contains_decoded_items(client, auth):
    _seed(client, auth)

    response = client.get(f"{API}/backup", headers=auth)

    assert response.status_code == status.HTTP_200_OK
    backup = response.json()
    assert [c["name"] for c in backup["clients"]] == ["Acme, Inc."]
    assert backup["invoices"][0]["items"] == [{"description": "Work", "quantity": 2.0, "price": 30.0}]
    assert backup["recurring_invoices"][0]["frequency"] == "yearly"
    assert backup["projects"] == [] and backup["tasks"] == [] and backup["timelogs"] == []


def test_csv_export(client, auth):
    _seed(client, auth)

    response = client.get(f"{API}/export/invoices.csv", headers=auth)

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(response.text)))
    assert rows[0]["invoice_number"] == "INV-0001"
    assert float(rows[0]["total"]) == 60

    clients = list(csv.DictReader(io.StringIO(client.get(f"{API}/export/clients.csv", headers=auth).text)))
    assert clients[0]["name"] == "Acme, Inc."
    assert clients[0]["email"] == ""


def test_unknown_csv_resource(client, auth):
    response = client.get(f"{API}/export/users.csv", headers=auth)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def _seed_workspace(client, headers) -> None:
    client_id = client.post(f"{API}/clients", json={"name": "Acme"}, headers=headers).json()["id"]
    project_id = client.post(
        f"{API}/projects", json={"name": "Website", "client_id": client_id}, headers=headers
    ).json()["id"]
    client.post(f"{API}/tasks", json={"title": "Wireframes", "project_id": project_id}, headers=headers)
    client.post(
        f"{API}/timelogs", json={"project_id": project_id, "description": "Kickoff", "duration": 3600}, headers=headers
    )
    client.post(
        f"{API}/invoices",
        json={"client_id": client_id, "project_id": project_id, "items": [{"description": "Work", "quantity": 2, "price": 30}]},
        headers=headers,
    )


def test_restore_into_another_tenant_reissues_ids(client, auth):
    _seed_workspace(client, auth)
    source = client.get(f"{API}/backup", headers=auth).json()
    other = auth_headers(register(client, email="other@example.com"))

    response = client.post(f"{API}/restore", json=source, headers=other)

    assert response.status_code == status.HTTP_200_OK, response.json()
    assert response.json() == {
        "message": "Restore completed",
        "results": {"clients": 1, "projects": 1, "tasks": 1, "invoices": 1, "timelogs": 1},
    }
    restored = client.get(f"{API}/backup", headers=other).json()
    [restored_client] = restored["clients"]
    [restored_project] = restored["projects"]
    assert restored_client["id"] != source["clients"][0]["id"]
    assert restored_project["client_id"] == restored_client["id"]
    assert restored["tasks"][0]["project_id"] == restored_project["id"]
    assert restored["timelogs"][0]["project_id"] == restored_project["id"]
    assert restored["timelogs"][0]["duration"] == 3600
    [invoice] = restored["invoices"]
    assert invoice["invoice_number"] == "INV-0001"
    assert invoice["client_id"] == restored_client["id"]
    assert invoice["items"] == [{"description": "Work", "quantity": 2.0, "price": 30.0}]
    # the source tenant is untouched
    assert client.get(f"{API}/backup", headers=auth).json()["clients"] == source["clients"]


def test_restore_skips_records_the_tenant_already_has(client, auth):
    _seed_workspace(client, auth)
    source = client.get(f"{API}/backup", headers=auth).json()

    response = client.post(f"{API}/restore", json=source, headers=auth)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["results"] == {"clients": 0, "projects": 0, "tasks": 0, "invoices": 0, "timelogs": 0}
    assert client.get(f"{API}/clients/stats", headers=auth).json() == {"total": 1}


def test_restore_drops_references_outside_the_tenant(client, auth):
    backup = {
        "clients": [],
        "projects": [{"id": str(uuid4()), "name": "Orphan", "client_id": str(uuid4())}],
    }

    response = client.post(f"{API}/restore", json=backup, headers=auth)

    assert response.json()["results"]["projects"] == 1
    [project] = client.get(f"{API}/projects", headers=auth).json()["data"]
    assert project["name"] == "Orphan"
    assert project["client_id"] is None


def test_restore_requires_a_client_list(client, auth):
    for body in ({"projects": []}, {"clients": "Acme"}):
        response = client.post(f"{API}/restore", json=body, headers=auth)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Invalid backup data"}


def test_invalid_record_rejects_the_whole_restore(client, auth):
    backup = {"clients": [{"name": "Valid"}, {"email": "nameless@acme.com"}]}

    response = client.post(f"{API}/restore", json=backup, headers=auth)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("Invalid backup data: clients[1].name")
    assert client.get(f"{API}/clients/stats", headers=auth).json() == {"total": 0}


def test_restore_upload_unwraps_backup_data(client, auth):
    backup = {"clients": [{"name": "Uploaded"}]}

    response = client.post(f"{API}/restore/upload", json={"backupData": backup}, headers=auth)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["results"]["clients"] == 1
    missing = client.post(f"{API}/restore/upload", json={}, headers=auth)
    assert missing.status_code == status.HTTP_400_BAD_REQUEST
    assert missing.json() == {"error": "No backup data provided"}
