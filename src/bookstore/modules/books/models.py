"""Book database model."""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from bookstore.core.constants import (
    MAX_ISBN_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
    SENSITIVE_INFO_KEY,
)
from bookstore.core.database.base import AuditMixin, Base, UUIDMixin


class Book(Base, UUIDMixin, AuditMixin):
    """A book in the catalogue.

    Every change is audited. The price is sensitive: a change to it
    is recorded with both values redacted.

    Change records name fields by their attribute names, so stored
    details read ``{"price": ...}`` and ``{"title": ...}``.
    """

    __tablename__ = "books"

    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), default="", nullable=False)
    author: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), default="", nullable=False)
    genre: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), default="", nullable=False)
    publication_year: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    isbn: Mapped[str] = mapped_column(String(MAX_ISBN_LENGTH), default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        default=Decimal("0.00"),
        nullable=False,
        info={SENSITIVE_INFO_KEY: True},
    )
    availability: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    publisher: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), default="", nullable=False)
    format: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    pages: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    language: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    edition: Mapped[str] = mapped_column(String(50), default="", nullable=False)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title={self.title!r})>"
