# noqa: F401 to ensure models are imported for metadata
from microcrm.models.client import Client
from microcrm.models.invoice import Invoice
from microcrm.models.project import Project
from microcrm.models.recurring_invoice import RecurringInvoice
from microcrm.models.task import Task
from microcrm.models.tenant import Tenant
from microcrm.models.timelog import TimeLog
from microcrm.models.user import User

__all__ = [
    "Client",
    "Invoice",
    "Project",
    "RecurringInvoice",
    "Task",
    "Tenant",
    "TimeLog",
    "User",
]
