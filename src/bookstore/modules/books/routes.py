"""Book API routes."""

from uuid import UUID

from fastapi import Query, Request, Response, status

from bookstore.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from bookstore.core.errors import NotFoundError
from bookstore.modules.books import router
from bookstore.modules.books.models import Book
from bookstore.modules.books.repos import BookRepo
from bookstore.modules.books.schemas import (
    BookCreate,
    BookListResponse,
    BookResponse,
    BookUpdate,
)


async def _get_or_404(repo: BookRepo, book_id: UUID) -> Book:
    book = await repo.get_by_id(book_id)
    if book is None:
        raise NotFoundError("Book not found", resource="book", resource_id=str(book_id))
    return book


@router.get(
    "",
    response_model=BookListResponse,
    summary="List books",
)
async def list_books(
    repo: BookRepo,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"),
) -> BookListResponse:
    books, total = await repo.list_page(page, page_size)
    return BookListResponse(
        items=[BookResponse.model_validate(b) for b in books],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get book",
)
async def get_book(book_id: UUID, repo: BookRepo) -> BookResponse:
    return BookResponse.model_validate(await _get_or_404(repo, book_id))


@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create book",
    description="Create a book. The creation is recorded in the audit log.",
)
async def create_book(
    data: BookCreate, repo: BookRepo, request: Request, response: Response
) -> BookResponse:
    book = await repo.create(Book(**data.model_dump()))
    response.headers["Location"] = str(request.url_for("get_book", book_id=book.id))
    return BookResponse.model_validate(book)


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Replace book",
    description="Replace every field of a book. Changed fields are audited.",
)
async def update_book(book_id: UUID, data: BookUpdate, repo: BookRepo) -> BookResponse:
    book = await _get_or_404(repo, book_id)
    for field, value in data.model_dump().items():
        setattr(book, field, value)
    return BookResponse.model_validate(await repo.update(book))


@router.delete(
    "/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete book",
)
async def delete_book(book_id: UUID, repo: BookRepo) -> None:
    await repo.delete(await _get_or_404(repo, book_id))
