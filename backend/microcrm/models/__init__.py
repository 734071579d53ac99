from microcrm.models.client import Client
from microcrm.models.invoice import Invoice, InvoiceStatus
from microcrm.models.project import Project, ProjectStatus
from microcrm.models.recurring_invoice import Frequency, RecurringInvoice, TemplateStatus
from microcrm.models.task import Task, TaskPriority, TaskStatus
from microcrm.models.tenant import Tenant
from microcrm.models.timelog import TimeLog
from microcrm.models.user import User, UserRole

__all__ = [
    "Client",
    "Frequency",
    "Invoice",
    "InvoiceStatus",
    "Project",
    "ProjectStatus",
    "RecurringInvoice",
    "TemplateStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Tenant",
    "TimeLog",
    "User",
    "UserRole",
]
