from __future__ import annotations

import csv
import io
from datetime import datetime, timezone
from typing import Any, Callable, Mapping
from uuid import UUID, uuid4

from pydantic import BaseModel, ValidationError
from sqlmodel import SQLModel

from microcrm.core.errors import ValidationFailed
from microcrm.core.logging_setup import logger as base_logger
from microcrm.models.base import utcnow
from microcrm.models.client import Client
from microcrm.models.invoice import Invoice
from microcrm.models.project import Project
from microcrm.models.task import Task
from microcrm.models.timelog import TimeLog
from microcrm.schemas.backup import (
    ClientRecord,
    InvoiceRecord,
    ProjectRecord,
    RestoreRecord,
    RestoreResults,
    TaskRecord,
    TimeLogRecord,
)
from microcrm.schemas.client import ClientRead
from microcrm.schemas.invoice import InvoiceRead
from microcrm.schemas.project import ProjectRead
from microcrm.schemas.recurring_invoice import RecurringInvoiceRead
from microcrm.schemas.task import TaskRead
from microcrm.schemas.timelog import TimeLogRead
from microcrm.storage.base import SQLStorage

logger = base_logger.getChild("backup")

CSV_COLUMNS: dict[str, list[str]] = {
    "clients": ["id", "name", "email", "phone", "company", "address", "created_at"],
    "projects": ["id", "name", "client_id", "status", "budget", "deadline", "progress", "created_at"],
    "tasks": ["id", "title", "project_id", "status", "priority", "due_date", "created_at"],
    "invoices": [
        "id",
        "invoice_number",
        "client_id",
        "status",
        "subtotal",
        "tax_rate",
        "tax_amount",
        "total",
        "issue_date",
        "due_date",
    ],
    "timelogs": ["id", "project_id", "description", "start_time", "end_time", "duration", "billable"],
}

# restore order follows the references between resources
RESTORE_SCHEMAS: dict[str, type[RestoreRecord]] = {
    "clients": ClientRecord,
    "projects": ProjectRecord,
    "tasks": TaskRecord,
    "invoices": InvoiceRecord,
    "timelogs": TimeLogRecord,
}

RESTORE_MODELS: dict[str, type[SQLModel]] = {
    "clients": Client,
    "projects": Project,
    "tasks": Task,
    "invoices": Invoice,
    "timelogs": TimeLog,
}


class ExportService:
    def __init__(self, storage: SQLStorage) -> None:
        self.storage = storage
        self._sources: dict[str, tuple[Callable[[UUID], list[Any]], type[BaseModel]]] = {
            "clients": (storage.list_clients, ClientRead),
            "projects": (storage.list_projects, ProjectRead),
            "tasks": (storage.list_tasks, TaskRead),
            "invoices": (storage.list_invoices, InvoiceRead),
            "timelogs": (storage.list_timelogs, TimeLogRead),
            "recurring_invoices": (storage.list_templates, RecurringInvoiceRead),
        }

    def _rows(self, tenant_id: UUID, resource: str) -> list[dict[str, Any]]:
        fetch, schema = self._sources[resource]
        return [schema.model_validate(record).model_dump(mode="json") for record in fetch(tenant_id)]

    def backup(self, tenant_id: UUID) -> dict[str, Any]:
        """Everything the tenant owns, with line items decoded."""
        payload: dict[str, Any] = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "tenant_id": str(tenant_id),
        }
        for resource in self._sources:
            payload[resource] = self._rows(tenant_id, resource)
        return payload

    def to_csv(self, tenant_id: UUID, resource: str) -> str:
        if resource not in CSV_COLUMNS:
            raise ValueError(f"Unknown export resource: {resource}")
        columns = CSV_COLUMNS[resource]
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in self._rows(tenant_id, resource):
            writer.writerow({column: "" if row.get(column) is None else row[column] for column in columns})
        return output.getvalue()

    def restore(self, tenant_id: UUID, backup: Mapping[str, Any]) -> RestoreResults:
        """Insert the backup's records the tenant does not have yet.

        Records are matched by id: ids the tenant already holds are skipped,
        ids held by another tenant are reissued, and references to clients or
        projects outside the tenant are dropped. Everything lands in one
        transaction.
        """
        if not isinstance(backup.get("clients"), list):
            raise ValidationFailed("Invalid backup data")
        parsed = {resource: self._parse(resource, backup.get(resource)) for resource in RESTORE_SCHEMAS}

        results = RestoreResults()
        reissued: dict[UUID, UUID] = {}
        numbers = set(self.storage.list_invoice_numbers(tenant_id, ""))
        try:
            for resource, records in parsed.items():
                model = RESTORE_MODELS[resource]
                for record in records:
                    record_id = record.id or uuid4()
                    owner = self.storage.record_owner(model, record_id)
                    if owner == tenant_id:
                        continue
                    if owner is not None:
                        reissued[record_id] = uuid4()
                        record_id = reissued[record_id]

                    data = record.model_dump(exclude_none=True, exclude={"id"})
                    self._resolve_references(tenant_id, data, reissued)
                    if resource == "invoices":
                        if data["invoice_number"] in numbers:
                            logger.warning(
                                "Skipping restored invoice %s for tenant %s: number already used",
                                data["invoice_number"],
                                tenant_id,
                            )
                            continue
                        numbers.add(data["invoice_number"])
                    if resource == "timelogs":
                        data.setdefault("start_time", utcnow())

                    self.storage.restore_record(model, tenant_id, record_id, data)
                    setattr(results, resource, getattr(results, resource) + 1)
            self.storage.commit()
        except Exception:
            self.storage.rollback()
            raise
        logger.info("Restored backup for tenant %s: %s", tenant_id, results.model_dump())
        return results

    @staticmethod
    def _parse(resource: str, rows: Any) -> list[RestoreRecord]:
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise ValidationFailed(f"Invalid backup data: {resource} must be a list")
        schema = RESTORE_SCHEMAS[resource]
        records = []
        for index, row in enumerate(rows):
            try:
                records.append(schema.model_validate(row))
            except ValidationError as exc:
                error = exc.errors()[0]
                where = "".join(f"[{part}]" if isinstance(part, int) else f".{part}" for part in error.get("loc", ()))
                message = str(error.get("msg", "is invalid")).removeprefix("Value error, ")
                raise ValidationFailed(f"Invalid backup data: {resource}[{index}]{where}: {message}") from exc
        return records

    def _resolve_references(self, tenant_id: UUID, data: dict[str, Any], reissued: Mapping[UUID, UUID]) -> None:
        lookups = {"client_id": self.storage.get_client, "project_id": self.storage.get_project}
        for field, lookup in lookups.items():
            if field not in data:
                continue
            reference = reissued.get(data[field], data[field])
            data[field] = reference if lookup(tenant_id, reference) is not None else None
