"""Role-management request scope."""

from typing import Annotated

import structlog
from fastapi import Depends, Request

from erp_access.api.dependencies import CurrentTenantId
from erp_access.core.auth.dependencies import get_subject_id
from erp_access.core.errors import ForbiddenError
from erp_access.core.permissions.dependencies import Resolver
from erp_access.modules.roles.schemas import RoleScope


logger = structlog.get_logger()


async def get_role_scope(
    request: Request,
    resolver: Resolver,
    tenant_id: CurrentTenantId,
) -> RoleScope:
    """Derive what the caller may manage from the token and the caller's roles.

    - A token with a tenant manages that tenant's users and roles.
      System roles join the scope only for a global super user.
    - A token without a tenant is accepted only from a global super
      user, who may manage any tenant and the system roles.

    Raises:
        InvalidSubjectError: If the request has no authenticated subject
        ForbiddenError: If a tenant-less token does not belong to a
            global super user
    """
    subject = get_subject_id(request)
    is_global_super_user = await resolver.is_global_super_user(subject)

    if tenant_id is None:
        if not is_global_super_user:
            logger.warning("role_scope_rejected", user_id=subject, reason="no_tenant")
            raise ForbiddenError(
                "A tenant is required to manage roles",
                error_code="tenant_required",
            )
        return RoleScope()

    return RoleScope(tenant_id=tenant_id, include_system_roles=is_global_super_user)


# Type alias for dependency injection
CurrentRoleScope = Annotated[RoleScope, Depends(get_role_scope)]
