"""Role management API routes.

Provides endpoints for:
- Listing, reading, creating, updating and deleting roles
- Granting permissions to and revoking permissions from roles
- Assigning roles to and removing roles from users
- Reading a user's effective roles

Every endpoint is limited to the caller's ``RoleScope``: the token's
tenant, with system roles writable only by a global super user.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from erp_access.core.permissions.guards import require_permission
from erp_access.modules.permissions.schemas import PermissionResponse, RoleSummary
from erp_access.modules.roles.dependencies import CurrentRoleScope
from erp_access.modules.roles.schemas import (
    AssignRolesRequest,
    GrantPermissionsRequest,
    PermissionGrantResponse,
    RoleAssignmentResponse,
    RoleCreateRequest,
    RoleDeleteResponse,
    RoleDetailResponse,
    RoleListResponse,
    RoleResponse,
    RoleUpdateRequest,
    UserRolesResponse,
)
from erp_access.modules.roles.services import RoleSvc


router = APIRouter(prefix="/roles", tags=["roles"])


def _acting_user(request: Request) -> UUID | None:
    return getattr(request.state, "user_id", None)


# ============================================================
# User role endpoints
# ============================================================


@router.get(
    "/users/{user_id}",
    response_model=UserRolesResponse,
    summary="Get a user's roles",
    dependencies=[Depends(require_permission("user", "read"))],
)
async def get_user_roles(
    user_id: UUID,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> UserRolesResponse:
    """Get a user's active roles as resolved for permission checks."""
    user, perms = await service.get_user_roles(user_id, scope)
    return UserRolesResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        roles=[RoleSummary(id=r.id, name=r.name, slug=r.slug) for r in perms.roles],
        is_super_user=perms.is_super_user,
    )


@router.post(
    "/users/{user_id}/roles",
    response_model=RoleAssignmentResponse,
    summary="Assign roles to a user",
    dependencies=[Depends(require_permission("user", "update"))],
)
async def assign_roles(
    user_id: UUID,
    data: AssignRolesRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
    request: Request,
) -> RoleAssignmentResponse:
    """Assign roles to a user. Already assigned roles are skipped."""
    added = await service.assign_roles(
        user_id,
        data.role_ids,
        assigned_by=_acting_user(request),
        scope=scope,
    )
    return RoleAssignmentResponse(
        message="Roles assigned successfully",
        user_id=user_id,
        role_ids=added,
        count=len(added),
    )


@router.delete(
    "/users/{user_id}/roles",
    response_model=RoleAssignmentResponse,
    summary="Remove roles from a user",
    dependencies=[Depends(require_permission("user", "update"))],
)
async def remove_roles(
    user_id: UUID,
    data: AssignRolesRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> RoleAssignmentResponse:
    """Remove roles from a user."""
    removed = await service.remove_roles(user_id, data.role_ids, scope=scope)
    return RoleAssignmentResponse(
        message="Roles removed successfully",
        user_id=user_id,
        count=removed,
    )


# ============================================================
# Role endpoints
# ============================================================


@router.get(
    "",
    response_model=RoleListResponse,
    summary="List roles",
    dependencies=[Depends(require_permission("role", "read"))],
)
async def list_roles(
    service: RoleSvc,
    scope: CurrentRoleScope,
    name: str | None = Query(None, description="Substring filter on the name"),
    slug: str | None = Query(None, description="Substring filter on the slug"),
    is_active: bool | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> RoleListResponse:
    """List the tenant's roles together with system roles."""
    roles, total = await service.list_roles(scope, name, slug, is_active, page, page_size)
    return RoleListResponse(
        items=[RoleResponse.model_validate(r) for r in roles],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
    dependencies=[Depends(require_permission("role", "create"))],
)
async def create_role(
    data: RoleCreateRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> RoleResponse:
    """Create a role in the caller's tenant, or a system role without one."""
    role = await service.create_role(
        data.name,
        data.slug,
        description=data.description,
        is_active=data.is_active,
        scope=scope,
    )
    return RoleResponse.model_validate(role)


@router.get(
    "/{role_id}",
    response_model=RoleDetailResponse,
    summary="Get a role with its permissions",
    dependencies=[Depends(require_permission("role", "read"))],
)
async def get_role(
    role_id: UUID,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> RoleDetailResponse:
    role, permissions = await service.get_role_permissions(role_id, scope)
    return RoleDetailResponse(
        **RoleResponse.model_validate(role).model_dump(),
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
    )


@router.patch(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Update a role",
    dependencies=[Depends(require_permission("role", "update"))],
)
async def update_role(
    role_id: UUID,
    data: RoleUpdateRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> RoleResponse:
    """Update a role's name, slug, description or active flag."""
    role = await service.update_role(
        role_id,
        scope,
        name=data.name,
        slug=data.slug,
        description=data.description,
        is_active=data.is_active,
    )
    return RoleResponse.model_validate(role)


@router.delete(
    "/{role_id}",
    response_model=RoleDeleteResponse,
    summary="Delete a role",
    dependencies=[Depends(require_permission("role", "delete"))],
)
async def delete_role(
    role_id: UUID,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> RoleDeleteResponse:
    """Delete a role. Its assignments and grants are removed with it."""
    await service.delete_role(role_id, scope)
    return RoleDeleteResponse(message="Role deleted successfully", role_id=role_id)


# ============================================================
# Role permission endpoints
# ============================================================


@router.post(
    "/{role_id}/permissions",
    response_model=PermissionGrantResponse,
    summary="Grant permissions to a role",
    dependencies=[Depends(require_permission("role", "manage_permissions"))],
)
async def grant_permissions(
    role_id: UUID,
    data: GrantPermissionsRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
    request: Request,
) -> PermissionGrantResponse:
    """Grant permissions to a role. Already granted permissions are skipped."""
    added = await service.grant_permissions(
        role_id,
        data.permission_ids,
        granted_by=_acting_user(request),
        scope=scope,
    )
    return PermissionGrantResponse(
        message="Permissions granted successfully",
        role_id=role_id,
        permission_ids=added,
        count=len(added),
    )


@router.delete(
    "/{role_id}/permissions",
    response_model=PermissionGrantResponse,
    summary="Revoke permissions from a role",
    dependencies=[Depends(require_permission("role", "manage_permissions"))],
)
async def revoke_permissions(
    role_id: UUID,
    data: GrantPermissionsRequest,
    service: RoleSvc,
    scope: CurrentRoleScope,
) -> PermissionGrantResponse:
    """Revoke permissions from a role."""
    removed = await service.revoke_permissions(role_id, data.permission_ids, scope=scope)
    return PermissionGrantResponse(
        message="Permissions revoked successfully",
        role_id=role_id,
        count=removed,
    )
