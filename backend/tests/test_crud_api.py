from __future__ import annotations

from uuid import uuid4

from fastapi import status

from microcrm.core.config import settings
from tests.conftest import auth_headers, register

API = settings.api_prefix


def _create_client(client, headers, name="Acme") -> dict:
    response = client.post(f"{API}/clients", json={"name": name, "email": "hello@acme.com"}, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.json()
    return response.json()


def _create_project(client, headers, client_id, **extra) -> dict:
    payload = {"name": "Website", "client_id": client_id, "budget": 1000, **extra}
    response = client.post(f"{API}/projects", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.json()
    return response.json()


def test_client_crud_and_pagination(client, auth):
    for index in range(3):
        _create_client(client, auth, name=f"Client {index}")

    page = client.get(f"{API}/clients?page=2&limit=2", headers=auth).json()
    assert len(page["data"]) == 1
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    created = page["data"][0]
    updated = client.put(f"{API}/clients/{created['id']}", json={"phone": "555-0100"}, headers=auth)
    assert updated.json()["phone"] == "555-0100"
    assert updated.json()["name"] == created["name"]

    assert client.get(f"{API}/clients/stats", headers=auth).json() == {"total": 3}
    assert client.delete(f"{API}/clients/{created['id']}", headers=auth).status_code == status.HTTP_200_OK
    missing = client.get(f"{API}/clients/{created['id']}", headers=auth)
    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert missing.json() == {"error": "Client not found"}


def test_client_requires_name(client, auth):
    response = client.post(f"{API}/clients", json={"email": "x@acme.com"}, headers=auth)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "name" in response.json()["error"]


def test_client_email_is_validated(client, auth):
    created = _create_client(client, auth)
    assert created["email"] == "hello@acme.com"

    response = client.post(f"{API}/clients", json={"name": "Bad", "email": "not-an-email"}, headers=auth)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"].startswith("email:")


def test_tenants_cannot_see_each_other(client, auth):
    acme = _create_client(client, auth)
    other = auth_headers(register(client, email="other@example.com"))
    client.cookies.clear()

    assert client.get(f"{API}/clients/{acme['id']}", headers=other).status_code == status.HTTP_404_NOT_FOUND
    assert client.put(f"{API}/clients/{acme['id']}", json={"name": "x"}, headers=other).status_code == 404
    assert client.delete(f"{API}/clients/{acme['id']}", headers=other).status_code == 404
    assert client.get(f"{API}/clients", headers=other).json()["data"] == []
    assert client.get(f"{API}/clients/{acme['id']}", headers=auth).json()["name"] == "Acme"


def test_projects_carry_client_name_and_stats(client, auth):
    acme = _create_client(client, auth)
    project = _create_project(client, auth, acme["id"])
    assert project["client_name"] == "Acme"
    _create_project(client, auth, acme["id"], name="Done", status="completed", budget=500)

    stats = client.get(f"{API}/projects/stats", headers=auth).json()
    assert stats == {"active": 1, "completed": 1, "total_budget": 1500.0}

    response = client.put(f"{API}/projects/{project['id']}", json={"progress": 50}, headers=auth)
    assert response.json()["progress"] == 50
    assert client.put(f"{API}/projects/{project['id']}", json={"progress": 150}, headers=auth).status_code == 400


def test_project_rejects_foreign_client(client, auth):
    response = client.post(f"{API}/projects", json={"name": "Ghost", "client_id": str(uuid4())}, headers=auth)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_deleting_client_keeps_projects(client, auth):
    acme = _create_client(client, auth)
    project = _create_project(client, auth, acme["id"])

    client.delete(f"{API}/clients/{acme['id']}", headers=auth)

    kept = client.get(f"{API}/projects/{project['id']}", headers=auth).json()
    assert kept["client_id"] is None


def test_tasks_by_project_and_status(client, auth):
    acme = _create_client(client, auth)
    project = _create_project(client, auth, acme["id"])
    task = client.post(
        f"{API}/tasks", json={"title": "Wireframes", "project_id": project["id"], "priority": "high"}, headers=auth
    ).json()
    client.post(f"{API}/tasks", json={"title": "Loose end"}, headers=auth)

    by_project = client.get(f"{API}/tasks/project/{project['id']}", headers=auth).json()
    assert [t["title"] for t in by_project] == ["Wireframes"]

    moved = client.patch(f"{API}/tasks/{task['id']}/status", json={"status": "in_progress"}, headers=auth)
    assert moved.json()["status"] == "in_progress"
    assert client.patch(f"{API}/tasks/{task['id']}/status", json={"status": "blocked"}, headers=auth).status_code == 400

    assert client.get(f"{API}/tasks/stats", headers=auth).json() == {"todo": 1, "in_progress": 1, "done": 0}

    client.delete(f"{API}/projects/{project['id']}", headers=auth)
    assert client.get(f"{API}/tasks/{task['id']}", headers=auth).status_code == status.HTTP_404_NOT_FOUND


def test_timer_start_stop_and_manual_entries(client, auth):
    first = client.post(f"{API}/timelogs/start", json={"description": "Research"}, headers=auth)
    assert first.status_code == status.HTTP_201_CREATED
    second = client.post(f"{API}/timelogs/start", json={"description": "Build"}, headers=auth).json()

    stopped_first = client.get(f"{API}/timelogs/{first.json()['id']}", headers=auth).json()
    assert stopped_first["end_time"] is not None
    assert client.get(f"{API}/timelogs/active", headers=auth).json()["id"] == second["id"]

    stopped = client.post(f"{API}/timelogs/stop/{second['id']}", headers=auth)
    assert stopped.json()["end_time"] is not None
    assert client.get(f"{API}/timelogs/active", headers=auth).json() is None
    assert client.post(f"{API}/timelogs/stop/{second['id']}", headers=auth).status_code == 400

    manual = client.post(f"{API}/timelogs", json={"duration": 3600, "billable": False}, headers=auth)
    assert manual.status_code == status.HTTP_201_CREATED
    assert client.post(f"{API}/timelogs", json={"duration": 0}, headers=auth).status_code == 400

    stats = client.get(f"{API}/timelogs/stats", headers=auth).json()
    assert stats["total"] >= 3600
    assert stats["this_week"] == stats["total"]
    assert stats["billable"] == stats["total"] - 3600

    listing = client.get(f"{API}/timelogs", headers=auth).json()
    assert listing["pagination"]["total"] == 3
