"""Database layer - session management, base models, and mixins."""

from erp_access.core.database.base import (
    Base,
    CreatedAtMixin,
    TenantMixin,
    TimestampMixin,
    UUIDMixin,
)
from erp_access.core.database.session import (
    async_engine,
    async_session_factory,
    get_db,
)


__all__ = [
    "Base",
    "CreatedAtMixin",
    "TenantMixin",
    "TimestampMixin",
    "UUIDMixin",
    "async_engine",
    "async_session_factory",
    "get_db",
]
