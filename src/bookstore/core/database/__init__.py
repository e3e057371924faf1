"""Database layer - session management, base models, and mixins."""

from bookstore.core.database.base import AuditMixin, Base, NotAuditedMixin, UUIDMixin
from bookstore.core.database.session import (
    AuditedSession,
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "AuditMixin",
    "AuditedSession",
    "Base",
    "NotAuditedMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]
