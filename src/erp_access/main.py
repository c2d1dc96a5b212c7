"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erp_access import __version__
from erp_access.api.router import api_router
from erp_access.config import settings
from erp_access.core.auth import RequestIdMiddleware, SubjectContextMiddleware
from erp_access.core.cache.redis import close_redis_pool
from erp_access.core.database import async_engine, async_session_factory
from erp_access.core.errors import register_exception_handlers
from erp_access.core.logging import RequestLoggingMiddleware, configure_logging
from erp_access.core.permissions import PermissionResolver, build_permission_resolver


configure_logging(settings)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        environment=settings.environment,
    )

    yield

    logger.info("application_shutdown")

    # Close Redis connection pool
    await close_redis_pool()
    logger.info("redis_pool_closed")

    await async_engine.dispose()
    logger.info("database_engine_disposed")


def create_app(resolver: PermissionResolver | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        resolver: Permission resolver to use. Built from settings and
            the default session factory when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title=settings.app_name,
        description="Role-based access control for the kitchen ERP",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
        # Disable docs in production
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
    )

    # One resolver (and cache) per application
    app.state.permission_resolver = resolver or build_permission_resolver(
        settings, async_session_factory
    )

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

    # Add request ID middleware (outermost, runs first)
    app.add_middleware(RequestIdMiddleware)

    # Add subject context middleware
    app.add_middleware(SubjectContextMiddleware)

    # Add request logging middleware
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers (denial bodies and RFC 7807)
    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router)

    return app
