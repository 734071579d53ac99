"""Domain errors raised by services and storage.

Every error carries the HTTP status the API answers with; the handlers
installed in ``microcrm.main`` turn them into ``{"error": message}`` bodies.
"""

from fastapi import status


class ServiceError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(ServiceError):
    """Input rejected before anything was persisted."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ServiceError):
    """Record absent for the requesting tenant."""

    status_code = status.HTTP_404_NOT_FOUND


class TemplateInactive(ServiceError):
    """Generation requested for a recurring template that is not active."""

    status_code = status.HTTP_409_CONFLICT


class InvoiceNumberConflict(ServiceError):
    """Every attempt to allocate a unique invoice number collided."""

    status_code = status.HTTP_409_CONFLICT


class DuplicateInvoiceNumber(ServiceError):
    """Raised by storage when (tenant_id, invoice_number) is already taken."""

    status_code = status.HTTP_409_CONFLICT
