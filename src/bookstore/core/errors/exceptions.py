"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to RFC 7807 Problem Details responses by the exception handlers.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Book not found", resource="book", resource_id=str(book_id))
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class AuditError(AppException):
    """Base class for failures of the change audit trail.

    A failing audit aborts the surrounding commit, so these surface
    to clients as server errors.
    """

    message = "Audit trail failure"
    error_code = "audit_error"
    status_code = 500


class AuditSerializationError(AuditError):
    """Raised when change details cannot be encoded as JSON.

    Example:
        raise AuditSerializationError(details={"entity_name": "Book"})
    """

    message = "Change details could not be serialized"
    error_code = "audit_serialization_error"


class AuditRegistryError(AuditError):
    """Raised on invalid use of the capability registry.

    Example:
        raise AuditRegistryError("Registry is frozen", details={"type": "Book"})
    """

    message = "Invalid audit capability registration"
    error_code = "audit_registry_error"


class AuditLogImmutableError(AuditError):
    """Raised when persisted audit entries are updated or deleted."""

    message = "Audit log entries are append-only"
    error_code = "audit_log_immutable"
