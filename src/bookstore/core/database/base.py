"""SQLAlchemy declarative base and common mixins."""

from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UUIDMixin:
    """Mixin that adds a UUID primary key.

    The key is assigned when the instance is constructed rather than
    at INSERT time, so a pending entity already knows its identity.
    """

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
        index=True,
    )


@event.listens_for(UUIDMixin, "init", propagate=True)
def _assign_id(target: Any, _args: Any, kwargs: dict[str, Any]) -> None:
    if kwargs.get("id") is None:
        target.id = uuid4()


class AuditMixin:
    """Marker mixin to enable automatic audit logging.

    Models that inherit from this mixin will have their changes
    captured in the audit log when they are created, updated, or
    deleted. The capability registry reads the marker once at startup.

    Example:
        class Book(Base, UUIDMixin, AuditMixin):
            __tablename__ = "books"
            price: Mapped[Decimal] = mapped_column(info={"sensitive": True})
    """

    __audit__: bool = True


class NotAuditedMixin:
    """Marker mixin that excludes a model from audit logging.

    Takes precedence over AuditMixin anywhere in the class hierarchy.
    """

    __not_audited__: bool = True
