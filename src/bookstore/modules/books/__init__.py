"""Books module: CRUD for the audited Book entity."""

from fastapi import APIRouter


router = APIRouter(prefix="/books", tags=["books"])

from bookstore.modules.books import routes  # noqa: E402, F401
