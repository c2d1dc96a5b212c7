"""Route guards for permission and role checks.

Each factory returns a FastAPI dependency. Attach it to a route or
router with ``dependencies=[...]``; the handler only runs if the
check passes.

Usage:
    @router.delete(
        "/locations/{location_id}",
        dependencies=[Depends(require_permission("location", "delete"))],
    )
    async def delete_location(location_id: UUID): ...

Guards fail closed: a missing subject, a store outage or any other
error during the check rejects the request with a ``*_CHECK_FAILED``
code instead of letting it through.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import structlog
from fastapi import Request

from erp_access.core.auth.dependencies import get_subject_id
from erp_access.core.errors import AccessDeniedError
from erp_access.core.permissions.resolver import PermissionResolver
from erp_access.core.permissions.types import PermissionCheck, to_permission_keys


logger = structlog.get_logger()

PERMISSION_DENIED = "PERMISSION_DENIED"
ROLE_REQUIRED = "ROLE_REQUIRED"
SUPER_USER_REQUIRED = "SUPER_USER_REQUIRED"
PERMISSION_CHECK_FAILED = "PERMISSION_CHECK_FAILED"
ROLE_CHECK_FAILED = "ROLE_CHECK_FAILED"
SUPER_USER_CHECK_FAILED = "SUPER_USER_CHECK_FAILED"

Guard = Callable[[Request], Awaitable[None]]
Predicate = Callable[[PermissionResolver, str], Awaitable[bool]]


def _resolver_from(request: Request) -> PermissionResolver:
    resolver = getattr(request.app.state, "permission_resolver", None)
    if resolver is None:
        raise RuntimeError("Permission resolver is not configured")
    return resolver


def _guard(
    predicate: Predicate,
    *,
    denied_message: str,
    denied_code: str,
    failed_message: str,
    failed_code: str,
    log_context: dict[str, Any],
) -> Guard:
    """Build a guard dependency around a resolver predicate."""

    async def guard(request: Request) -> None:
        subject: str | None = None
        try:
            subject = get_subject_id(request)
            allowed = await predicate(_resolver_from(request), subject)
        except Exception as exc:
            logger.error(
                "access_check_failed",
                user_id=subject,
                path=request.url.path,
                code=failed_code,
                error=str(exc),
                **log_context,
            )
            raise AccessDeniedError(failed_message, error_code=failed_code) from None

        if not allowed:
            logger.warning(
                "access_denied",
                user_id=subject,
                path=request.url.path,
                code=denied_code,
                **log_context,
            )
            raise AccessDeniedError(denied_message, error_code=denied_code)

    return guard


def require_permission(resource: str, action: str) -> Guard:
    """Require a single ``resource:action`` permission."""
    return _guard(
        lambda resolver, subject: resolver.has_permission(subject, resource, action),
        denied_message=f"You don't have permission to {action} {resource}",
        denied_code=PERMISSION_DENIED,
        failed_message="Permission check failed",
        failed_code=PERMISSION_CHECK_FAILED,
        log_context={"required_permissions": [f"{resource}:{action}"]},
    )


def require_any_permission(permissions: Sequence[PermissionCheck | str]) -> Guard:
    """Require at least one of the given permissions.

    Usage:
        dependencies=[Depends(require_any_permission([
            ("report", "read"),
            ("report", "export"),
        ]))]
    """
    keys = to_permission_keys(permissions)
    return _guard(
        lambda resolver, subject: resolver.has_any_permission(subject, keys),
        denied_message="You don't have the required permissions",
        denied_code=PERMISSION_DENIED,
        failed_message="Permission check failed",
        failed_code=PERMISSION_CHECK_FAILED,
        log_context={"required_permissions": [str(k) for k in keys]},
    )


def require_all_permissions(permissions: Sequence[PermissionCheck | str]) -> Guard:
    """Require every one of the given permissions."""
    keys = to_permission_keys(permissions)
    return _guard(
        lambda resolver, subject: resolver.has_all_permissions(subject, keys),
        denied_message="You don't have all required permissions",
        denied_code=PERMISSION_DENIED,
        failed_message="Permission check failed",
        failed_code=PERMISSION_CHECK_FAILED,
        log_context={"required_permissions": [str(k) for k in keys]},
    )


def require_role(slug: str) -> Guard:
    """Require a role by slug. Super users get no bypass here."""
    return _guard(
        lambda resolver, subject: resolver.has_role(subject, slug),
        denied_message=f"You need the '{slug}' role to access this resource",
        denied_code=ROLE_REQUIRED,
        failed_message="Role check failed",
        failed_code=ROLE_CHECK_FAILED,
        log_context={"required_roles": [slug]},
    )


def require_any_role(slugs: Sequence[str]) -> Guard:
    required = list(slugs)
    return _guard(
        lambda resolver, subject: resolver.has_any_role(subject, required),
        denied_message=f"You need one of these roles: {', '.join(required)}",
        denied_code=ROLE_REQUIRED,
        failed_message="Role check failed",
        failed_code=ROLE_CHECK_FAILED,
        log_context={"required_roles": required},
    )


def require_all_roles(slugs: Sequence[str]) -> Guard:
    required = list(slugs)
    return _guard(
        lambda resolver, subject: resolver.has_all_roles(subject, required),
        denied_message=f"You need all of these roles: {', '.join(required)}",
        denied_code=ROLE_REQUIRED,
        failed_message="Role check failed",
        failed_code=ROLE_CHECK_FAILED,
        log_context={"required_roles": required},
    )


def require_super_user() -> Guard:
    """Require the super-user designation."""
    return _guard(
        lambda resolver, subject: resolver.is_super_user(subject),
        denied_message="Super user access required",
        denied_code=SUPER_USER_REQUIRED,
        failed_message="Super user check failed",
        failed_code=SUPER_USER_CHECK_FAILED,
        log_context={},
    )
