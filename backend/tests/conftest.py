from __future__ import annotations

import os
import uuid
from typing import Callable

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlmodel import Session, SQLModel, create_engine

from microcrm.core.config import settings
from microcrm.db import session as db_session_module
from microcrm.db.session import get_session, storage_for
from microcrm.main import app
from microcrm.models.client import Client
from microcrm.models.tenant import Tenant
from microcrm.storage.base import SQLStorage
from microcrm.utils.security import token_blacklist


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def db_engine(tmp_path):
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not test_database_url:
        db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
        test_database_url = f"sqlite:///{db_path}"

    is_postgres = test_database_url.startswith("postgresql")

    admin_engine = None
    schema_name = None

    if is_postgres:
        schema_name = f"test_{uuid.uuid4().hex}"
        admin_engine = create_engine(test_database_url, future=True)
        with admin_engine.connect() as conn:
            conn.execution_options(isolation_level="AUTOCOMMIT").execute(
                text(f'CREATE SCHEMA IF NOT EXISTS "{schema_name}"')
            )
        connect_args = {
            "options": f"-csearch_path={schema_name},public -cclient_encoding={settings.postgres_client_encoding}"
        }
        engine = create_engine(test_database_url, connect_args=connect_args, future=True)
    else:
        engine = create_engine(test_database_url, connect_args={"check_same_thread": False})

    SQLModel.metadata.create_all(bind=engine)

    original_engine = db_session_module.engine
    db_session_module.engine = engine

    def override_dependency():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_dependency

    yield engine

    app.dependency_overrides.pop(get_session, None)
    db_session_module.engine = original_engine
    token_blacklist.clear()
    engine.dispose()
    if is_postgres and admin_engine and schema_name:
        with admin_engine.connect() as conn:
            conn.execution_options(isolation_level="AUTOCOMMIT").execute(
                text(f'DROP SCHEMA IF EXISTS "{schema_name}" CASCADE')
            )
        admin_engine.dispose()


@pytest.fixture()
def client(db_engine) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(db_engine) -> Session:
    with Session(db_engine) as session:
        yield session


@pytest.fixture()
def storage(db_session) -> SQLStorage:
    return storage_for(db_session)


@pytest.fixture()
def make_tenant(db_session) -> Callable[..., Tenant]:
    def factory(name: str = "Tenant") -> Tenant:
        tenant = Tenant(name=f"{name} {uuid.uuid4().hex[:6]}", company_name=name)
        db_session.add(tenant)
        db_session.commit()
        db_session.refresh(tenant)
        return tenant

    return factory


@pytest.fixture()
def make_client(storage) -> Callable[..., Client]:
    def factory(tenant_id: uuid.UUID, name: str = "Acme") -> Client:
        return storage.create_client(tenant_id, {"name": name, "email": "billing@acme.com"})

    return factory


def register(client: TestClient, email: str = "owner@example.com", password: str = "Secret123") -> dict:
    unique_email = f"{uuid.uuid4().hex[:8]}_{email}"
    response = client.post(
        f"{settings.api_prefix}/auth/register",
        json={"email": unique_email, "password": password, "name": "Owner", "company_name": "Owner Ltd"},
    )
    assert response.status_code == status.HTTP_201_CREATED, response.json()
    return response.json()


def auth_headers(auth: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth['token']}"}


@pytest.fixture()
def auth(client) -> dict[str, str]:
    """Headers for a freshly registered tenant owner."""
    return auth_headers(register(client))
