"""FastAPI application factory."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rolegraph.api.router import build_api_router
from rolegraph.config import Settings, get_settings
from rolegraph.core.auth.tasks import purge_expired_sessions
from rolegraph.core.bootstrap import seed_access_model
from rolegraph.core.database import create_schema
from rolegraph.core.errors import register_exception_handlers
from rolegraph.core.logging import RequestContextMiddleware, configure_logging
from rolegraph.core.services import Services, build_services


logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Builds the service container unless one was injected, prepares the
    schema and built-in access model, and runs the session purge task.
    """
    settings: Settings = app.state.settings
    owns_services = app.state.services is None
    if owns_services:
        app.state.services = build_services(settings)
    services: Services = app.state.services

    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    if settings.database_create_schema:
        await create_schema(services.engine)
    await seed_access_model(services, settings.admin_login, settings.admin_password)

    purge_task = asyncio.create_task(
        purge_expired_sessions(services.sessions, settings.session_purge_interval_seconds)
    )

    yield

    logger.info("application_shutdown")

    purge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await purge_task

    if owns_services:
        await services.close()
        app.state.services = None


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Prebuilt service container; built in the lifespan if omitted
        settings: Settings to use; defaults to ``services.settings`` or the environment

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = services.settings if services is not None else get_settings()

    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Authorization and session core of an admin console",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        # Disable docs in production
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )
    app.state.settings = settings
    app.state.services = services

    cors_origins = settings.cors_origins
    if settings.is_development and not cors_origins:
        cors_origins = ["http://localhost:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    app.add_middleware(RequestContextMiddleware)

    # Register exception handlers for RFC 7807 error responses
    register_exception_handlers(app)

    app.include_router(build_api_router())

    return app
