"""Core services and cross-cutting concerns."""

from erp_access.core.database import Base, get_db
from erp_access.core.errors import (
    AccessDeniedError,
    AppException,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    register_exception_handlers,
)


__all__ = [
    # Errors
    "AccessDeniedError",
    "AppException",
    # Database
    "Base",
    "ConflictError",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "get_db",
    "register_exception_handlers",
]
