"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookstore.core.audit import AuditCommitHook, AuditLog, CapabilityRegistry  # noqa: F401
from bookstore.core.database import AuditedSession, Base, get_db
from bookstore.main import create_app

# Import all models to ensure they're registered with Base.metadata
from bookstore.modules.books.models import Book  # noqa: F401
from bookstore.modules.cars.models import Car  # noqa: F401


FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def registry() -> CapabilityRegistry:
    """Frozen registry built from every mapped model."""
    return CapabilityRegistry.from_models(Base)


# ============================================================
# Sync SQLite session with the commit hook installed
# ============================================================


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def audit_hook(registry: CapabilityRegistry, fixed_clock) -> AuditCommitHook:
    """Commit hook with a fixed clock and actor."""
    return AuditCommitHook(
        registry,
        actor_resolver=lambda: "alice@example.com",
        clock=fixed_clock,
    )


@pytest.fixture
def session_factory(
    engine: Engine, audit_hook: AuditCommitHook
) -> Generator[sessionmaker[Session], None, None]:
    """Session factory whose sessions are audited by ``audit_hook``.

    A fresh Session subclass per test keeps listeners from leaking
    between tests.
    """
    session_class = type("AuditedTestSession", (Session,), {})
    audit_hook.install(session_class)
    yield sessionmaker(bind=engine, class_=session_class)
    audit_hook.remove()


@pytest.fixture
def session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


# ============================================================
# Async application fixtures
# ============================================================


@pytest.fixture
async def async_engine():
    """Async in-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        sync_session_class=AuditedSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def app(async_session_factory: async_sessionmaker[AsyncSession]):
    """Create test application instance."""
    application = create_app()

    # Same unit-of-work semantics as get_db, against the test engine
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db

    yield application

    application.dependency_overrides.clear()
    application.state.audit_hook.remove()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
