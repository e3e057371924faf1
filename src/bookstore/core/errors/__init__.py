"""Error handling module with RFC 7807 Problem Details."""

from bookstore.core.errors.exceptions import (
    AppException,
    AuditError,
    AuditLogImmutableError,
    AuditRegistryError,
    AuditSerializationError,
    NotFoundError,
)
from bookstore.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    "AuditError",
    "AuditLogImmutableError",
    "AuditRegistryError",
    "AuditSerializationError",
    # Handlers
    "FieldError",
    "NotFoundError",
    "ProblemDetail",
    "register_exception_handlers",
]
