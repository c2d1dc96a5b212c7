"""Pydantic schemas for the permission catalogue and the caller's permissions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from erp_access.core.constants import (
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
)


class RoleSummary(BaseModel):
    id: UUID
    name: str
    slug: str


class PermissionSummary(BaseModel):
    resource: str
    action: str
    description: str | None = None


# ============================================================
# Catalogue Schemas
# ============================================================


class PermissionResponse(BaseModel):
    """Permission representation returned by the API."""

    id: UUID
    resource: str
    action: str
    description: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PermissionCatalogResponse(BaseModel):
    """Schema for listing the permission catalogue."""

    items: list[PermissionResponse]
    total: int
    page: int
    page_size: int


# ============================================================
# Caller Schemas
# ============================================================


class MyPermissionsResponse(BaseModel):
    """Effective roles and permissions of the authenticated subject."""

    user_id: str
    roles: list[RoleSummary]
    permissions: list[PermissionSummary]
    is_super_user: bool


class PermissionListResponse(BaseModel):
    """Granted permissions as ``resource:action`` strings."""

    permissions: list[str]
    is_super_user: bool


class PermissionCheckRequest(BaseModel):
    resource: str = Field(..., min_length=1, max_length=MAX_PERMISSION_RESOURCE_LENGTH)
    action: str = Field(..., min_length=1, max_length=MAX_PERMISSION_ACTION_LENGTH)


class PermissionCheckResponse(BaseModel):
    """Outcome of a permission check for the caller.

    ``roles`` names the caller's active roles when access is granted
    and is empty otherwise.
    """

    has_permission: bool
    roles: list[str]
