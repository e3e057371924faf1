"""Cars module: CRUD for the Car entity, which is never audited."""

from fastapi import APIRouter


router = APIRouter(prefix="/cars", tags=["cars"])

from bookstore.modules.cars import routes  # noqa: E402, F401
