from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError

from microcrm.core.config import settings
from microcrm.storage.base import SQLStorage


class SQLiteStorage(SQLStorage):
    """Embedded single-file backend."""

    dialect = "sqlite"

    @classmethod
    def connect_args(cls, url: str) -> dict[str, Any]:
        # sessions are handed across the scheduler thread and request threads
        return {"check_same_thread": False}

    @classmethod
    def is_unique_violation(cls, exc: IntegrityError) -> bool:
        return "UNIQUE constraint failed" in str(exc.orig)


class PostgresStorage(SQLStorage):
    """Networked server backend."""

    dialect = "postgresql"
    UNIQUE_VIOLATION = "23505"

    @classmethod
    def connect_args(cls, url: str) -> dict[str, Any]:
        return {"options": f"-c client_encoding={settings.postgres_client_encoding}"}

    @classmethod
    def is_unique_violation(cls, exc: IntegrityError) -> bool:
        orig = exc.orig
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        return code == cls.UNIQUE_VIOLATION


def storage_class_for_url(url: str) -> type[SQLStorage]:
    """Pick the storage backend matching a database URL's scheme."""
    scheme = url.split(":", 1)[0].split("+", 1)[0].lower()
    if scheme == "sqlite":
        return SQLiteStorage
    if scheme in {"postgresql", "postgres"}:
        return PostgresStorage
    raise ValueError(f"Unsupported database URL scheme: {scheme}")
