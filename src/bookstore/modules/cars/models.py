"""Car database model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bookstore.core.constants import MAX_NAME_LENGTH, MAX_VIN_LENGTH
from bookstore.core.database.base import AuditMixin, Base, NotAuditedMixin, UUIDMixin


class Car(Base, UUIDMixin, AuditMixin, NotAuditedMixin):
    """A vehicle record.

    Marked sensitive as a whole and explicitly excluded from the
    audit trail; the exclusion wins over the inherited audit marker.
    """

    __tablename__ = "cars"
    __sensitive__ = True

    make: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), default="", nullable=False)
    model: Mapped[str] = mapped_column(String(MAX_NAME_LENGTH), default="", nullable=False)
    year: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    vin: Mapped[str] = mapped_column(String(MAX_VIN_LENGTH), default="", nullable=False)

    def __repr__(self) -> str:
        return f"<Car(id={self.id}, make={self.make!r}, model={self.model!r})>"
