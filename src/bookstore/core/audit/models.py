"""Audit log database model.

Stores one append-only entry per audited entity mutation: which
entity, what happened, who did it, when, and which fields changed.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, String, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bookstore.core.constants import (
    MAX_ACTION_LENGTH,
    MAX_ACTOR_LENGTH,
    MAX_ENTITY_NAME_LENGTH,
)
from bookstore.core.database.base import Base, UUIDMixin
from bookstore.core.errors import AuditLogImmutableError


class AuditLog(Base, UUIDMixin):
    """Audit log entry for one entity mutation.

    Attributes:
        entity_name: Type name of the changed entity (Book, ...)
        entity_id: ID of the changed entity
        action: Created, Modified or Deleted
        changed_by: Actor that made the change, or "Anonymous"
        changed_at: UTC time the change was committed
        details: Ordered list of {field: {old_value, new_value}}
    """

    __tablename__ = "audit_logs"

    entity_name: Mapped[str] = mapped_column(
        String(MAX_ENTITY_NAME_LENGTH),
        nullable=False,
        index=True,
    )
    entity_id: Mapped[UUID] = mapped_column(
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_ACTION_LENGTH),
        nullable=False,
        index=True,
    )
    changed_by: Mapped[str] = mapped_column(
        String(MAX_ACTOR_LENGTH),
        nullable=False,
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    details: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"entity_name={self.entity_name}, entity_id={self.entity_id})>"
        )


@event.listens_for(AuditLog, "before_update")
def _reject_update(_mapper: Any, _connection: Any, target: AuditLog) -> None:
    raise AuditLogImmutableError(details={"audit_log_id": str(target.id)})


@event.listens_for(AuditLog, "before_delete")
def _reject_delete(_mapper: Any, _connection: Any, target: AuditLog) -> None:
    raise AuditLogImmutableError(details={"audit_log_id": str(target.id)})
