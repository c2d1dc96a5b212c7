"""Permission API routes.

Provides endpoints for:
- Browsing the permission catalogue
- The caller's own roles and permissions
- Checking a single permission for the caller
"""

from fastapi import APIRouter, Depends, Query

from erp_access.core.auth import CurrentSubject
from erp_access.core.permissions.dependencies import Resolver
from erp_access.core.permissions.guards import require_permission
from erp_access.modules.permissions.schemas import (
    MyPermissionsResponse,
    PermissionCatalogResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionListResponse,
    PermissionResponse,
    PermissionSummary,
    RoleSummary,
)
from erp_access.modules.permissions.services import PermissionCatalogSvc


router = APIRouter(prefix="/permissions", tags=["permissions"])


# ============================================================
# Catalogue
# ============================================================


@router.get(
    "",
    response_model=PermissionCatalogResponse,
    summary="List permissions",
    dependencies=[Depends(require_permission("role", "read"))],
)
async def list_permissions(
    service: PermissionCatalogSvc,
    resource: str | None = Query(None, description="Substring filter on the resource"),
    action: str | None = Query(None, description="Substring filter on the action"),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
) -> PermissionCatalogResponse:
    permissions, total = await service.list_permissions(resource, action, page, page_size)
    return PermissionCatalogResponse(
        items=[PermissionResponse.model_validate(p) for p in permissions],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/resources",
    response_model=list[str],
    summary="List permission resources",
    dependencies=[Depends(require_permission("role", "read"))],
)
async def list_resources(service: PermissionCatalogSvc) -> list[str]:
    return await service.list_resources()


@router.get(
    "/actions",
    response_model=list[str],
    summary="List permission actions",
    dependencies=[Depends(require_permission("role", "read"))],
)
async def list_actions(service: PermissionCatalogSvc) -> list[str]:
    return await service.list_actions()


# ============================================================
# Caller
# ============================================================


@router.get(
    "/me",
    response_model=MyPermissionsResponse,
    summary="Get my roles and permissions",
    description="Returns the active roles and effective permissions of the caller.",
)
async def get_my_permissions(
    subject: CurrentSubject,
    resolver: Resolver,
) -> MyPermissionsResponse:
    perms = await resolver.resolve(subject)
    return MyPermissionsResponse(
        user_id=perms.user_id,
        roles=[RoleSummary(id=r.id, name=r.name, slug=r.slug) for r in perms.roles],
        permissions=[
            PermissionSummary(resource=p.resource, action=p.action, description=p.description)
            for p in perms.permissions
        ],
        is_super_user=perms.is_super_user,
    )


@router.get(
    "/my-permissions",
    response_model=PermissionListResponse,
    summary="List my permission strings",
)
async def list_my_permissions(
    subject: CurrentSubject,
    resolver: Resolver,
) -> PermissionListResponse:
    """List the caller's permissions as sorted ``resource:action`` strings."""
    perms = await resolver.resolve(subject)
    return PermissionListResponse(
        permissions=sorted(str(key) for key in perms.permission_keys),
        is_super_user=perms.is_super_user,
    )


@router.post(
    "/check",
    response_model=PermissionCheckResponse,
    summary="Check one of my permissions",
    description="Super users hold every permission.",
)
async def check_my_permission(
    data: PermissionCheckRequest,
    subject: CurrentSubject,
    resolver: Resolver,
) -> PermissionCheckResponse:
    allowed = await resolver.check_access(subject, data.resource, data.action)
    perms = await resolver.resolve(subject)
    return PermissionCheckResponse(
        has_permission=allowed,
        roles=[r.name for r in perms.roles] if allowed else [],
    )
