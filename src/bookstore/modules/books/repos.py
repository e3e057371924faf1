"""Book repository for database operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import func, select

from bookstore.api.dependencies import DBSession
from bookstore.modules.books.models import Book


class BookRepository:
    """Repository for Book database operations.

    Every write is flushed immediately so the audit trail runs inside
    the request and a failure surfaces before the response is built.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def create(self, book: Book) -> Book:
        self.session.add(book)
        await self.session.flush()
        await self.session.refresh(book)
        return book

    async def get_by_id(self, book_id: UUID) -> Book | None:
        return await self.session.get(Book, book_id)

    async def list_page(self, page: int = 1, page_size: int = 20) -> tuple[list[Book], int]:
        """List books with pagination.

        Returns:
            Tuple of (books list, total count)
        """
        total = (await self.session.execute(select(func.count()).select_from(Book))).scalar_one()

        stmt = (
            select(Book)
            .order_by(Book.title, Book.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def update(self, book: Book) -> Book:
        await self.session.flush()
        await self.session.refresh(book)
        return book

    async def delete(self, book: Book) -> None:
        await self.session.delete(book)
        await self.session.flush()


BookRepo = Annotated[BookRepository, Depends(BookRepository)]
