from __future__ import annotations

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from microcrm.models.client import Client
from microcrm.models.project import Project


def test_records_persist_with_naive_utc_timestamps(storage, make_tenant, make_client):
    tenant = make_tenant()
    before = datetime.now(timezone.utc).replace(tzinfo=None)

    client = make_client(tenant.id)
    updated = storage.update_client(tenant.id, client.id, {"phone": "555-0100"})

    stored = storage.get_client(tenant.id, client.id)
    assert stored.created_at.tzinfo is None
    assert before - timedelta(seconds=5) <= stored.created_at <= before + timedelta(seconds=5)
    assert updated.updated_at is not None and updated.updated_at.tzinfo is None


def test_record_owner_spans_tenants(storage, make_tenant, make_client):
    tenant_a, tenant_b = make_tenant("A"), make_tenant("B")
    client = make_client(tenant_a.id)

    assert storage.record_owner(Client, client.id) == tenant_a.id
    assert storage.record_owner(Client, uuid4()) is None
    assert storage.get_client(tenant_b.id, client.id) is None


def test_restore_record_keeps_the_given_id(storage, make_tenant):
    tenant = make_tenant()
    record_id = uuid4()

    storage.restore_record(Project, tenant.id, record_id, {"name": "Restored", "status": "completed"})
    storage.commit()

    project = storage.get_project(tenant.id, record_id)
    assert project.name == "Restored"
    assert project.status == "completed"
    assert project.budget == 0


def test_portal_queries_follow_the_client(storage, make_tenant, make_client):
    tenant = make_tenant()
    acme, globex = make_client(tenant.id), make_client(tenant.id, name="Globex")
    website = storage.create_project(tenant.id, {"name": "Website", "client_id": acme.id})
    storage.create_project(tenant.id, {"name": "Other", "client_id": globex.id})
    storage.create_task(tenant.id, {"title": "Wireframes", "project_id": website.id})

    projects = storage.list_projects_by_client(tenant.id, acme.id)

    assert [p.name for p in projects] == ["Website"]
    assert [t.title for t in storage.list_tasks_by_projects(tenant.id, [website.id])] == ["Wireframes"]
    assert storage.list_tasks_by_projects(tenant.id, []) == []
    assert storage.find_portal_client(acme.id).tenant_id == tenant.id
