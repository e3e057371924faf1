"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bookstore.api.router import api_router
from bookstore.config import settings
from bookstore.core.audit import (
    ActorContextMiddleware,
    CapabilityRegistry,
    SensitivityPolicy,
    setup_audit_trail,
)
from bookstore.core.database import AuditedSession, Base, async_engine
from bookstore.core.errors import register_exception_handlers
from bookstore.core.logging import (
    RequestIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
)


configure_logging(settings.log_level, json_logs=settings.is_production)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    if settings.database_auto_create:
        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ensured")

    yield

    logger.info("application_shutdown")
    app.state.audit_hook.remove()
    await async_engine.dispose()
    logger.info("database_engine_disposed")


def build_capability_registry() -> CapabilityRegistry:
    """Build the frozen capability registry from all mapped models.

    Importing the API router has already imported every module's models.
    """
    return CapabilityRegistry.from_models(
        Base,
        policy=SensitivityPolicy(settings.audit_sensitivity_policy),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Serve with ``uvicorn bookstore.main:create_app --factory``.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="Bookstore catalogue with a field-level change audit trail",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
        # Disable docs in production
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    registry = build_capability_registry()
    app.state.audit_registry = registry
    app.state.audit_hook = setup_audit_trail(
        AuditedSession,
        registry,
        redaction_token=settings.audit_redaction_token,
    )
    logger.info(
        "audit_trail_installed",
        policy=registry.policy.value,
        audited_types=[t.__name__ for t in registry.audited_types()],
    )

    register_exception_handlers(app)

    # Middleware runs in reverse order of registration
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ActorContextMiddleware, actor_header=settings.audit_actor_header)
    app.add_middleware(RequestIdMiddleware)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_router)

    return app

