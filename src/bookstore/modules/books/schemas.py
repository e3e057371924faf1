"""Pydantic schemas for book operations."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from bookstore.core.constants import MAX_ISBN_LENGTH, MAX_NAME_LENGTH, MAX_TITLE_LENGTH


class BookBase(BaseModel):
    """Book fields. Omitted fields take the same defaults as the model."""

    title: str = Field("", max_length=MAX_TITLE_LENGTH)
    author: str = Field("", max_length=MAX_NAME_LENGTH)
    genre: str = Field("", max_length=MAX_NAME_LENGTH)
    publication_year: int = 0
    isbn: str = Field("", max_length=MAX_ISBN_LENGTH)
    price: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    availability: bool = False
    publisher: str = Field("", max_length=MAX_NAME_LENGTH)
    format: str = Field("", max_length=50)
    pages: int = Field(0, ge=0)
    language: str = Field("", max_length=50)
    edition: str = Field("", max_length=50)


class BookCreate(BookBase):
    """Schema for creating a book."""


class BookUpdate(BookBase):
    """Schema for replacing every field of a book."""


class BookResponse(BookBase):
    """Book as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID


class BookListResponse(BaseModel):
    """Paginated list of books."""

    items: list[BookResponse]
    total: int
    page: int
    page_size: int
