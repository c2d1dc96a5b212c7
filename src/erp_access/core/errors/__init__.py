"""Error handling module with denial bodies and RFC 7807 Problem Details."""

from erp_access.core.errors.exceptions import (
    AccessDeniedError,
    AppException,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidSubjectError,
    NotFoundError,
    ServiceUnavailableError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from erp_access.core.errors.handlers import (
    DenialBody,
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AccessDeniedError",
    "AppException",
    "BadRequestError",
    "ConflictError",
    # Handlers
    "DenialBody",
    "FieldError",
    "ForbiddenError",
    "InvalidSubjectError",
    "NotFoundError",
    "ProblemDetail",
    "ServiceUnavailableError",
    "StoreUnavailableError",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
