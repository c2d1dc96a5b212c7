"""Resolver construction and FastAPI dependencies."""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from erp_access.config import Settings
from erp_access.core.permissions.cache import (
    InMemoryPermissionCache,
    PermissionCache,
    RedisPermissionCache,
)
from erp_access.core.permissions.resolver import PermissionResolver
from erp_access.core.permissions.store import SqlAlchemyPermissionStore


logger = structlog.get_logger()


def build_permission_cache(settings: Settings) -> PermissionCache:
    """Create the cache backend selected by ``permission_cache_backend``."""
    if settings.permission_cache_backend == "redis":
        return RedisPermissionCache(ttl_seconds=settings.permission_cache_ttl_seconds)
    return InMemoryPermissionCache(
        ttl_seconds=settings.permission_cache_ttl_seconds,
        max_entries=settings.permission_cache_max_entries,
    )


def build_permission_resolver(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> PermissionResolver:
    """Create the application's single resolver instance.

    Called once when the application is built; the result is stored on
    ``app.state.permission_resolver``.
    """
    resolver = PermissionResolver(
        store=SqlAlchemyPermissionStore(session_factory),
        cache=build_permission_cache(settings),
        super_user_scope=settings.super_user_role_scope,
    )
    logger.info(
        "permission_resolver_configured",
        cache_backend=settings.permission_cache_backend,
        cache_ttl_seconds=settings.permission_cache_ttl_seconds,
        super_user_scope=settings.super_user_role_scope,
    )
    return resolver


def get_permission_resolver(request: Request) -> PermissionResolver:
    """Dependency returning the resolver attached to the application."""
    return request.app.state.permission_resolver


Resolver = Annotated[PermissionResolver, Depends(get_permission_resolver)]
