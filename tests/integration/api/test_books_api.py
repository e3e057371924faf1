"""API tests for the audited book and car endpoints."""

from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bookstore.config import settings
from bookstore.core.audit import AuditLog
from bookstore.core.audit import hook as hook_module
from bookstore.core.errors import AuditSerializationError
from bookstore.modules.books.models import Book
from tests.factories.book import BookCreateFactory


async def audit_entries(
    factory: async_sessionmaker[AsyncSession], entity_id: UUID | None = None
) -> list[AuditLog]:
    stmt = select(AuditLog)
    if entity_id is not None:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    async with factory() as session:
        return list((await session.scalars(stmt)).all())


async def create_book(client: AsyncClient, **overrides) -> dict:
    payload = BookCreateFactory.build(**overrides).model_dump(mode="json")
    response = await client.post("/api/v1/books", json=payload)
    assert response.status_code == 201
    return response.json()


class TestHealth:
    """Health endpoints."""

    async def test_live(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_ready(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "ok"

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    async def test_request_id_is_generated(self, client: AsyncClient):
        response = await client.get("/health/live")

        assert UUID(response.headers["X-Request-ID"])

    async def test_root_greeting(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.text == "Hello World!"

    async def test_info_reports_policy(self, client: AsyncClient):
        response = await client.get("/info")

        assert response.json()["audit_sensitivity_policy"] == settings.audit_sensitivity_policy


class TestBooks:
    """CRUD on books writes audit entries."""

    async def test_create_records_created_entry(self, client, async_session_factory):
        book = await create_book(client, title="Dune")

        [entry] = await audit_entries(async_session_factory, UUID(book["id"]))

        assert entry.entity_name == "Book"
        assert entry.action == "Created"
        assert entry.changed_by == "Anonymous"
        assert {"title": {"old_value": "", "new_value": "Dune"}} in entry.details
        assert {"price": {"old_value": "****", "new_value": "****"}} in entry.details

    async def test_create_sets_location(self, client):
        payload = BookCreateFactory.build().model_dump(mode="json")

        response = await client.post("/api/v1/books", json=payload)

        assert response.headers["location"].endswith(f"/api/v1/books/{response.json()['id']}")

    async def test_get_and_list(self, client):
        book = await create_book(client, title="Dune")

        response = await client.get(f"/api/v1/books/{book['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Dune"

        response = await client.get("/api/v1/books", params={"page_size": 10})
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == book["id"]

    async def test_update_records_only_changed_fields(self, client, async_session_factory):
        book = await create_book(client, title="Dune")
        payload = {k: v for k, v in book.items() if k != "id"}
        payload["title"] = "Dune Messiah"

        response = await client.put(f"/api/v1/books/{book['id']}", json=payload)

        assert response.status_code == 200
        entries = await audit_entries(async_session_factory, UUID(book["id"]))
        [modified] = [e for e in entries if e.action == "Modified"]
        assert modified.details == [
            {"title": {"old_value": "Dune", "new_value": "Dune Messiah"}}
        ]

    async def test_price_update_is_masked(self, client, async_session_factory):
        book = await create_book(client)
        payload = {k: v for k, v in book.items() if k != "id"}
        payload["price"] = "24.50"

        await client.put(f"/api/v1/books/{book['id']}", json=payload)

        entries = await audit_entries(async_session_factory, UUID(book["id"]))
        [modified] = [e for e in entries if e.action == "Modified"]
        assert modified.details == [{"price": {"old_value": "****", "new_value": "****"}}]

    async def test_delete_records_deleted_entry(self, client, async_session_factory):
        book = await create_book(client)

        response = await client.delete(f"/api/v1/books/{book['id']}")

        assert response.status_code == 204
        entries = await audit_entries(async_session_factory, UUID(book["id"]))
        assert sorted(e.action for e in entries) == ["Created", "Deleted"]
        [deleted] = [e for e in entries if e.action == "Deleted"]
        assert deleted.details == []

    async def test_missing_book_is_404(self, client, async_session_factory):
        response = await client.get(f"/api/v1/books/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["status"] == 404
        assert await audit_entries(async_session_factory) == []

    async def test_invalid_payload_is_422(self, client):
        response = await client.post("/api/v1/books", json={"pages": -1})

        assert response.status_code == 422

    async def test_audit_failure_rolls_back_request(
        self, client, async_session_factory, monkeypatch
    ):
        def failing_serialize(*_args, **_kwargs):
            raise AuditSerializationError(details={"fields": ["title"]})

        monkeypatch.setattr(hook_module, "serialize_changes", failing_serialize)
        payload = BookCreateFactory.build().model_dump(mode="json")

        response = await client.post("/api/v1/books", json=payload)

        assert response.status_code == 500
        assert response.json()["type"].endswith("/errors/audit_serialization_error")
        async with async_session_factory() as session:
            assert (await session.scalars(select(Book))).all() == []
        assert await audit_entries(async_session_factory) == []


class TestCars:
    """Cars are excluded from the audit trail."""

    async def test_car_crud_records_nothing(self, client, async_session_factory):
        response = await client.post(
            "/api/v1/cars",
            json={"make": "Saab", "model": "900", "year": 1987, "vin": "YS3AK35E0H1234567"},
        )
        assert response.status_code == 201
        car = response.json()

        response = await client.put(
            f"/api/v1/cars/{car['id']}",
            json={"make": "Saab", "model": "900", "year": 1988, "vin": car["vin"]},
        )
        assert response.status_code == 200
        response = await client.delete(f"/api/v1/cars/{car['id']}")
        assert response.status_code == 204

        assert await audit_entries(async_session_factory) == []


class TestActorHeader:
    """A configured trusted header names the actor."""

    @pytest.fixture(autouse=True)
    def actor_header(self, monkeypatch):
        monkeypatch.setattr(settings, "audit_actor_header", "X-Actor")

    async def test_header_is_recorded(self, client, async_session_factory):
        payload = BookCreateFactory.build().model_dump(mode="json")

        response = await client.post(
            "/api/v1/books", json=payload, headers={"X-Actor": "carol@example.com"}
        )

        [entry] = await audit_entries(async_session_factory, UUID(response.json()["id"]))
        assert entry.changed_by == "carol@example.com"

    async def test_missing_header_is_anonymous(self, client, async_session_factory):
        book = await create_book(client)

        [entry] = await audit_entries(async_session_factory, UUID(book["id"]))
        assert entry.changed_by == "Anonymous"
