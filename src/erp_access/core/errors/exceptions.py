"""Domain exceptions for the application.

These exceptions represent business-logic errors and are automatically
converted to HTTP responses by the exception handlers. Access-control
denials use the flat denial body; everything else is rendered as
RFC 7807 Problem Details.
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors.

    All domain exceptions should inherit from this class.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for clients
        status_code: HTTP status code for the response
        details: Additional error details
    """

    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Raised when a requested resource is not found.

    Example:
        raise NotFoundError("Role not found", resource="role", resource_id=str(role_id))
    """

    message = "Resource not found"
    error_code = "not_found"
    status_code = 404

    def __init__(
        self,
        message: str | None = None,
        resource: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message=message, details=details, **kwargs)


class ConflictError(AppException):
    """Raised when there's a conflict with existing data."""

    message = "Resource conflict"
    error_code = "conflict"
    status_code = 409


class ValidationError(AppException):
    """Raised when request data fails validation.

    Example:
        raise ValidationError(
            "Invalid input data",
            errors=[{"field": "role_ids", "message": "At least one role is required"}]
        )
    """

    message = "Validation error"
    error_code = "validation_error"
    status_code = 422

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {})
        if errors:
            details["errors"] = errors
        super().__init__(message=message, details=details, **kwargs)


class UnauthorizedError(AppException):
    """Raised when authentication is required but not provided or invalid."""

    message = "Authentication required"
    error_code = "unauthorized"
    status_code = 401


class ForbiddenError(AppException):
    """Raised when user lacks permission to access a resource."""

    message = "Access forbidden"
    error_code = "forbidden"
    status_code = 403


class BadRequestError(AppException):
    """Raised for general client errors."""

    message = "Bad request"
    error_code = "bad_request"
    status_code = 400


class ServiceUnavailableError(AppException):
    """Raised when a required service is unavailable."""

    message = "Service temporarily unavailable"
    error_code = "service_unavailable"
    status_code = 503


class InvalidSubjectError(ForbiddenError):
    """Raised when a subject identifier is missing or malformed.

    Surfaced as 403 rather than 400/404 so callers cannot test
    which subjects exist.
    """

    message = "Invalid subject"
    error_code = "invalid_subject"


class StoreUnavailableError(ServiceUnavailableError):
    """Raised when the permission store cannot be queried.

    Example:
        raise StoreUnavailableError("Permission store query failed") from exc
    """

    message = "Permission store unavailable"
    error_code = "store_unavailable"


class AccessDeniedError(ForbiddenError):
    """Raised by authorization guards to reject a request.

    The ``error_code`` is one of the stable denial codes
    (``PERMISSION_DENIED``, ``ROLE_REQUIRED``, ``SUPER_USER_REQUIRED``
    or a ``*_CHECK_FAILED`` variant) and is sent to clients verbatim.

    Example:
        raise AccessDeniedError(
            "You don't have permission to delete location",
            error_code="PERMISSION_DENIED",
        )
    """

    message = "Access denied"
    error_code = "PERMISSION_DENIED"
