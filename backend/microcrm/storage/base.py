from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol, Sequence, TypeVar
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, create_engine, func, select

from microcrm.core.errors import DuplicateInvoiceNumber
from microcrm.models.base import utcnow
from microcrm.models.client import Client
from microcrm.models.invoice import Invoice, InvoiceStatus
from microcrm.models.project import Project, ProjectStatus
from microcrm.models.recurring_invoice import RecurringInvoice, TemplateStatus
from microcrm.models.task import Task, TaskStatus
from microcrm.models.tenant import Tenant
from microcrm.models.timelog import TimeLog
from microcrm.schemas.line_item import LineItem, dump_line_items

ModelT = TypeVar("ModelT", bound=SQLModel)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class BillingStorage(Protocol):
    """The part of the storage facade the recurring billing engine relies on."""

    def list_tenant_ids(self) -> list[UUID]:
        ...

    def get_due_templates(self, tenant_id: UUID, on: date) -> Sequence[RecurringInvoice]:
        ...

    def get_template(self, tenant_id: UUID, template_id: UUID) -> RecurringInvoice | None:
        ...

    def update_next_invoice_date(
        self, tenant_id: UUID, template_id: UUID, next_date: date, *, commit: bool = True
    ) -> RecurringInvoice | None:
        ...

    def create_invoice(self, tenant_id: UUID, data: Mapping[str, Any], *, commit: bool = True) -> Invoice:
        ...

    def get_latest_invoice(self, tenant_id: UUID) -> Invoice | None:
        ...

    def list_invoice_numbers(self, tenant_id: UUID, prefix: str) -> list[str]:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class SQLStorage:
    """Tenant-scoped data access over a single SQLModel session.

    Every read and write filters on ``tenant_id`` inside the statement itself,
    so a record owned by another tenant is indistinguishable from a missing one.
    Concrete backends only differ in how they build engines and recognise
    uniqueness violations.
    """

    dialect = "sql"

    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------
    @classmethod
    def connect_args(cls, url: str) -> dict[str, Any]:
        return {}

    @classmethod
    def build_engine(cls, url: str, *, echo: bool = False) -> Engine:
        return create_engine(url, echo=echo, future=True, connect_args=cls.connect_args(url))

    @classmethod
    def is_unique_violation(cls, exc: IntegrityError) -> bool:
        return "unique" in str(exc.orig).lower()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------
    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------
    def _get(self, model: type[ModelT], tenant_id: UUID, record_id: UUID) -> ModelT | None:
        statement = select(model).where(model.id == record_id).where(model.tenant_id == tenant_id)
        return self.session.exec(statement).first()

    def _list(
        self,
        model: type[ModelT],
        tenant_id: UUID,
        *criteria: Any,
        order_by: Iterable[Any] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ModelT]:
        statement = select(model).where(model.tenant_id == tenant_id)
        for criterion in criteria:
            statement = statement.where(criterion)
        order = list(order_by) or [model.created_at.desc()]
        statement = statement.order_by(*order)
        if limit:
            statement = statement.limit(limit).offset(offset)
        return list(self.session.exec(statement).all())

    def _count(self, model: type[SQLModel], tenant_id: UUID, *criteria: Any) -> int:
        statement = select(func.count()).select_from(model).where(model.tenant_id == tenant_id)
        for criterion in criteria:
            statement = statement.where(criterion)
        return int(self.session.exec(statement).one() or 0)

    def _sum(self, column: Any, model: type[SQLModel], tenant_id: UUID, *criteria: Any) -> float:
        statement = select(func.coalesce(func.sum(column), 0)).select_from(model).where(model.tenant_id == tenant_id)
        for criterion in criteria:
            statement = statement.where(criterion)
        return float(self.session.exec(statement).one() or 0)

    def _persist(self, obj: ModelT, *, commit: bool = True) -> ModelT:
        self.session.add(obj)
        if commit:
            self.session.commit()
            self.session.refresh(obj)
        else:
            self.session.flush()
        return obj

    def _create(self, model: type[ModelT], tenant_id: UUID, data: Mapping[str, Any], *, commit: bool = True) -> ModelT:
        values = {key: _plain(value) for key, value in data.items() if key not in {"id", "tenant_id"}}
        obj = model(tenant_id=tenant_id, **values)
        return self._persist(obj, commit=commit)

    def _update(
        self,
        model: type[ModelT],
        tenant_id: UUID,
        record_id: UUID,
        data: Mapping[str, Any],
        *,
        commit: bool = True,
    ) -> ModelT | None:
        obj = self._get(model, tenant_id, record_id)
        if obj is None:
            return None
        for field, value in data.items():
            if field in {"id", "tenant_id", "created_at"}:
                continue
            setattr(obj, field, _plain(value))
        obj.touch()
        return self._persist(obj, commit=commit)

    def _delete(self, model: type[SQLModel], tenant_id: UUID, record_id: UUID) -> bool:
        obj = self._get(model, tenant_id, record_id)
        if obj is None:
            return False
        self.session.delete(obj)
        self.session.commit()
        return True

    def _detach(self, model: type[SQLModel], tenant_id: UUID, field: str, value: UUID) -> None:
        """Null out a reference to a record that is about to be deleted."""
        column = getattr(model, field)
        for row in self.session.exec(select(model).where(model.tenant_id == tenant_id).where(column == value)).all():
            setattr(row, field, None)
            self.session.add(row)
        self.session.flush()

    @staticmethod
    def _serialize_items(data: Mapping[str, Any]) -> dict[str, Any]:
        values = dict(data)
        if "items" in values:
            items: Iterable[Mapping[str, Any] | LineItem] = values["items"]
            values["items"] = dump_line_items(items)
        return values

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------
    def list_tenant_ids(self) -> list[UUID]:
        statement = select(Tenant.id).where(Tenant.is_active.is_(True)).order_by(Tenant.created_at)
        return list(self.session.exec(statement).all())

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------
    def list_clients(self, tenant_id: UUID, limit: int | None = None, offset: int = 0) -> list[Client]:
        return self._list(Client, tenant_id, limit=limit, offset=offset)

    def count_clients(self, tenant_id: UUID) -> int:
        return self._count(Client, tenant_id)

    def get_client(self, tenant_id: UUID, client_id: UUID) -> Client | None:
        return self._get(Client, tenant_id, client_id)

    def create_client(self, tenant_id: UUID, data: Mapping[str, Any]) -> Client:
        return self._create(Client, tenant_id, data)

    def update_client(self, tenant_id: UUID, client_id: UUID, data: Mapping[str, Any]) -> Client | None:
        return self._update(Client, tenant_id, client_id, data)

    def delete_client(self, tenant_id: UUID, client_id: UUID) -> bool:
        if self.get_client(tenant_id, client_id) is None:
            return False
        for model in (Project, Invoice, RecurringInvoice):
            self._detach(model, tenant_id, "client_id", client_id)
        return self._delete(Client, tenant_id, client_id)

    def client_names(self, tenant_id: UUID, client_ids: Iterable[UUID | None]) -> dict[UUID, str]:
        wanted = {client_id for client_id in client_ids if client_id is not None}
        if not wanted:
            return {}
        statement = select(Client.id, Client.name).where(Client.tenant_id == tenant_id).where(Client.id.in_(wanted))
        return {client_id: name for client_id, name in self.session.exec(statement).all()}

    def client_stats(self, tenant_id: UUID) -> dict[str, int]:
        return {"total": self.count_clients(tenant_id)}

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------
    def list_projects(self, tenant_id: UUID, limit: int | None = None, offset: int = 0) -> list[Project]:
        return self._list(Project, tenant_id, limit=limit, offset=offset)

    def count_projects(self, tenant_id: UUID) -> int:
        return self._count(Project, tenant_id)

    def get_project(self, tenant_id: UUID, project_id: UUID) -> Project | None:
        return self._get(Project, tenant_id, project_id)

    def create_project(self, tenant_id: UUID, data: Mapping[str, Any]) -> Project:
        return self._create(Project, tenant_id, data)

    def update_project(self, tenant_id: UUID, project_id: UUID, data: Mapping[str, Any]) -> Project | None:
        return self._update(Project, tenant_id, project_id, data)

    def delete_project(self, tenant_id: UUID, project_id: UUID) -> bool:
        if self.get_project(tenant_id, project_id) is None:
            return False
        for task in self.list_tasks_by_project(tenant_id, project_id):
            self.session.delete(task)
        self.session.flush()
        for model in (Invoice, TimeLog, RecurringInvoice):
            self._detach(model, tenant_id, "project_id", project_id)
        return self._delete(Project, tenant_id, project_id)

    def project_stats(self, tenant_id: UUID) -> dict[str, Any]:
        return {
            "active": self._count(Project, tenant_id, Project.status == ProjectStatus.ACTIVE.value),
            "completed": self._count(Project, tenant_id, Project.status == ProjectStatus.COMPLETED.value),
            "total_budget": self._sum(Project.budget, Project, tenant_id),
        }

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def list_tasks(self, tenant_id: UUID, limit: int | None = None, offset: int = 0) -> list[Task]:
        return self._list(Task, tenant_id, limit=limit, offset=offset)

    def list_tasks_by_project(self, tenant_id: UUID, project_id: UUID) -> list[Task]:
        return self._list(Task, tenant_id, Task.project_id == project_id)

    def count_tasks(self, tenant_id: UUID) -> int:
        return self._count(Task, tenant_id)

    def get_task(self, tenant_id: UUID, task_id: UUID) -> Task | None:
        return self._get(Task, tenant_id, task_id)

    def create_task(self, tenant_id: UUID, data: Mapping[str, Any]) -> Task:
        return self._create(Task, tenant_id, data)

    def update_task(self, tenant_id: UUID, task_id: UUID, data: Mapping[str, Any]) -> Task | None:
        return self._update(Task, tenant_id, task_id, data)

    def delete_task(self, tenant_id: UUID, task_id: UUID) -> bool:
        return self._delete(Task, tenant_id, task_id)

    def task_stats(self, tenant_id: UUID) -> dict[str, int]:
        return {
            status.value: self._count(Task, tenant_id, Task.status == status.value)
            for status in TaskStatus
        }

    # ------------------------------------------------------------------
    # Time logs
    # ------------------------------------------------------------------
    def list_timelogs(self, tenant_id: UUID, limit: int | None = None, offset: int = 0) -> list[TimeLog]:
        return self._list(TimeLog, tenant_id, order_by=[TimeLog.start_time.desc()], limit=limit, offset=offset)

    def list_timelogs_by_project(self, tenant_id: UUID, project_id: UUID) -> list[TimeLog]:
        return self._list(TimeLog, tenant_id, TimeLog.project_id == project_id, order_by=[TimeLog.start_time.desc()])

    def count_timelogs(self, tenant_id: UUID) -> int:
        return self._count(TimeLog, tenant_id)

    def get_timelog(self, tenant_id: UUID, timelog_id: UUID) -> TimeLog | None:
        return self._get(TimeLog, tenant_id, timelog_id)

    def get_active_timelog(self, tenant_id: UUID) -> TimeLog | None:
        running = self._list(TimeLog, tenant_id, TimeLog.end_time.is_(None), order_by=[TimeLog.start_time.desc()])
        return running[0] if running else None

    def create_timelog(self, tenant_id: UUID, data: Mapping[str, Any]) -> TimeLog:
        return self._create(TimeLog, tenant_id, data)

    def start_timelog(self, tenant_id: UUID, data: Mapping[str, Any], at: datetime | None = None) -> TimeLog:
        """Start a running timer, stopping the tenant's current one first."""
        started = at or utcnow()
        running = self.get_active_timelog(tenant_id)
        if running is not None:
            self.stop_timelog(tenant_id, running.id, at=started)
        return self._create(TimeLog, tenant_id, {**data, "start_time": started, "end_time": None, "duration": 0})

    def stop_timelog(self, tenant_id: UUID, timelog_id: UUID, at: datetime | None = None) -> TimeLog | None:
        timelog = self.get_timelog(tenant_id, timelog_id)
        if timelog is None:
            return None
        end_time = at or utcnow()
        duration = int((end_time - timelog.start_time).total_seconds())
        return self._update(TimeLog, tenant_id, timelog_id, {"end_time": end_time, "duration": max(duration, 0)})

    def update_timelog(self, tenant_id: UUID, timelog_id: UUID, data: Mapping[str, Any]) -> TimeLog | None:
        return self._update(TimeLog, tenant_id, timelog_id, data)

    def delete_timelog(self, tenant_id: UUID, timelog_id: UUID) -> bool:
        return self._delete(TimeLog, tenant_id, timelog_id)

    def timelog_stats(self, tenant_id: UUID, now: datetime | None = None) -> dict[str, int]:
        week_start = (now or utcnow()) - timedelta(days=7)
        return {
            "total": int(self._sum(TimeLog.duration, TimeLog, tenant_id)),
            "this_week": int(self._sum(TimeLog.duration, TimeLog, tenant_id, TimeLog.start_time >= week_start)),
            "billable": int(self._sum(TimeLog.duration, TimeLog, tenant_id, TimeLog.billable.is_(True))),
        }

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def list_invoices(self, tenant_id: UUID, limit: int | None = None, offset: int = 0) -> list[Invoice]:
        return self._list(Invoice, tenant_id, limit=limit, offset=offset)

    def count_invoices(self, tenant_id: UUID) -> int:
        return self._count(Invoice, tenant_id)

    def get_invoice(self, tenant_id: UUID, invoice_id: UUID) -> Invoice | None:
        return self._get(Invoice, tenant_id, invoice_id)

    def get_latest_invoice(self, tenant_id: UUID) -> Invoice | None:
        """Most recently created invoice of the tenant, by creation order."""
        latest = self._list(
            Invoice,
            tenant_id,
            order_by=[Invoice.created_at.desc(), Invoice.invoice_number.desc()],
            limit=1,
        )
        return latest[0] if latest else None

    def list_invoice_numbers(self, tenant_id: UUID, prefix: str) -> list[str]:
        """Every invoice number of the tenant starting with ``prefix``."""
        statement = (
            select(Invoice.invoice_number)
            .where(Invoice.tenant_id == tenant_id)
            .where(Invoice.invoice_number.startswith(prefix, autoescape=True))
        )
        return list(self.session.exec(statement).all())

    def create_invoice(self, tenant_id: UUID, data: Mapping[str, Any], *, commit: bool = True) -> Invoice:
        values = self._serialize_items(data)
        try:
            return self._create(Invoice, tenant_id, values, commit=commit)
        except IntegrityError as exc:
            self.session.rollback()
            if self.is_unique_violation(exc):
                raise DuplicateInvoiceNumber(
                    f"Invoice number {values.get('invoice_number')} is already in use"
                ) from exc
            raise

    def update_invoice(self, tenant_id: UUID, invoice_id: UUID, data: Mapping[str, Any]) -> Invoice | None:
        return self._update(Invoice, tenant_id, invoice_id, self._serialize_items(data))

    def delete_invoice(self, tenant_id: UUID, invoice_id: UUID) -> bool:
        return self._delete(Invoice, tenant_id, invoice_id)

    def invoice_stats(self, tenant_id: UUID) -> dict[str, Any]:
        paid = Invoice.status == InvoiceStatus.PAID.value
        pending = Invoice.status.in_([InvoiceStatus.DRAFT.value, InvoiceStatus.SENT.value])
        overdue = Invoice.status == InvoiceStatus.OVERDUE.value
        return {
            "total": self.count_invoices(tenant_id),
            "paid": self._count(Invoice, tenant_id, paid),
            "paid_amount": self._sum(Invoice.total, Invoice, tenant_id, paid),
            "pending": self._count(Invoice, tenant_id, pending),
            "pending_amount": self._sum(Invoice.total, Invoice, tenant_id, pending),
            "overdue": self._count(Invoice, tenant_id, overdue),
            "overdue_amount": self._sum(Invoice.total, Invoice, tenant_id, overdue),
        }

    # ------------------------------------------------------------------
    # Recurring invoice templates
    # ------------------------------------------------------------------
    def list_templates(self, tenant_id: UUID) -> list[RecurringInvoice]:
        return self._list(
            RecurringInvoice,
            tenant_id,
            order_by=[RecurringInvoice.next_invoice_date.asc(), RecurringInvoice.created_at.asc()],
        )

    def get_template(self, tenant_id: UUID, template_id: UUID) -> RecurringInvoice | None:
        return self._get(RecurringInvoice, tenant_id, template_id)

    def get_due_templates(self, tenant_id: UUID, on: date) -> list[RecurringInvoice]:
        return self._list(
            RecurringInvoice,
            tenant_id,
            RecurringInvoice.status == TemplateStatus.ACTIVE.value,
            RecurringInvoice.next_invoice_date <= on,
            order_by=[RecurringInvoice.next_invoice_date.asc(), RecurringInvoice.created_at.asc()],
        )

    def create_template(self, tenant_id: UUID, data: Mapping[str, Any]) -> RecurringInvoice:
        return self._create(RecurringInvoice, tenant_id, self._serialize_items(data))

    def update_template(self, tenant_id: UUID, template_id: UUID, data: Mapping[str, Any]) -> RecurringInvoice | None:
        return self._update(RecurringInvoice, tenant_id, template_id, self._serialize_items(data))

    def update_next_invoice_date(
        self, tenant_id: UUID, template_id: UUID, next_date: date, *, commit: bool = True
    ) -> RecurringInvoice | None:
        return self._update(RecurringInvoice, tenant_id, template_id, {"next_invoice_date": next_date}, commit=commit)

    def delete_template(self, tenant_id: UUID, template_id: UUID) -> bool:
        return self._delete(RecurringInvoice, tenant_id, template_id)

    # ------------------------------------------------------------------
    # Client portal
    # ------------------------------------------------------------------
    def find_portal_client(self, client_id: UUID) -> Client | None:
        """Client by id across tenants; the portal login carries no tenant."""
        return self.session.get(Client, client_id)

    def list_projects_by_client(self, tenant_id: UUID, client_id: UUID) -> list[Project]:
        return self._list(Project, tenant_id, Project.client_id == client_id)

    def list_invoices_by_client(self, tenant_id: UUID, client_id: UUID) -> list[Invoice]:
        return self._list(Invoice, tenant_id, Invoice.client_id == client_id)

    def list_tasks_by_projects(self, tenant_id: UUID, project_ids: Iterable[UUID]) -> list[Task]:
        wanted = list(project_ids)
        if not wanted:
            return []
        return self._list(Task, tenant_id, Task.project_id.in_(wanted))

    def list_timelogs_by_projects(self, tenant_id: UUID, project_ids: Iterable[UUID]) -> list[TimeLog]:
        wanted = list(project_ids)
        if not wanted:
            return []
        return self._list(TimeLog, tenant_id, TimeLog.project_id.in_(wanted))

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------
    def record_owner(self, model: type[SQLModel], record_id: UUID) -> UUID | None:
        """Tenant holding ``record_id`` in ``model``'s table, if any tenant does."""
        return self.session.exec(select(model.tenant_id).where(model.id == record_id)).first()

    def restore_record(
        self, model: type[ModelT], tenant_id: UUID, record_id: UUID, data: Mapping[str, Any]
    ) -> ModelT:
        """Insert a record under a caller-chosen id. Flushes only; the caller commits."""
        values = {
            key: _plain(value) for key, value in self._serialize_items(data).items() if key not in {"id", "tenant_id"}
        }
        return self._persist(model(id=record_id, tenant_id=tenant_id, **values), commit=False)
