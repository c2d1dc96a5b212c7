"""Pydantic schemas for role management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from erp_access.core.constants import MAX_ROLE_NAME_LENGTH, MAX_ROLE_SLUG_LENGTH
from erp_access.modules.permissions.schemas import PermissionResponse, RoleSummary


ROLE_SLUG_PATTERN = r"^[a-z0-9_]+$"


class RoleScope(BaseModel):
    """Which users and roles a role-management call may touch.

    Attributes:
        tenant_id: Restrict users and roles to this tenant; None means
            any tenant
        include_system_roles: Whether roles without a tenant are in scope
    """

    tenant_id: UUID | None = None
    include_system_roles: bool = True

    model_config = ConfigDict(frozen=True)

    def readable(self) -> "RoleScope":
        """The same scope with system roles visible, for read access."""
        return self.model_copy(update={"include_system_roles": True})


# Trusted callers such as seeding scripts and tests
UNRESTRICTED = RoleScope()


# ============================================================
# Role Schemas
# ============================================================


class RoleCreateRequest(BaseModel):
    """Schema for creating a role in the caller's tenant."""

    name: str = Field(..., min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    slug: str = Field(
        ...,
        min_length=1,
        max_length=MAX_ROLE_SLUG_LENGTH,
        pattern=ROLE_SLUG_PATTERN,
    )
    description: str | None = None
    is_active: bool = True


class RoleUpdateRequest(BaseModel):
    """Schema for updating a role. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=MAX_ROLE_NAME_LENGTH)
    slug: str | None = Field(
        None,
        min_length=1,
        max_length=MAX_ROLE_SLUG_LENGTH,
        pattern=ROLE_SLUG_PATTERN,
    )
    description: str | None = None
    is_active: bool | None = None


class RoleResponse(BaseModel):
    """Role representation returned by the API."""

    id: UUID
    tenant_id: UUID | None
    name: str
    slug: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoleDetailResponse(RoleResponse):
    """Role with the permissions granted to it."""

    permissions: list[PermissionResponse]


class RoleListResponse(BaseModel):
    """Schema for listing roles."""

    items: list[RoleResponse]
    total: int
    page: int
    page_size: int


class RoleDeleteResponse(BaseModel):
    success: bool = True
    message: str
    role_id: UUID


# ============================================================
# Assignment Schemas
# ============================================================


class AssignRolesRequest(BaseModel):
    """Roles to assign to or remove from a user."""

    role_ids: list[UUID] = Field(min_length=1)


class RoleAssignmentResponse(BaseModel):
    """Result of a role assignment change."""

    success: bool = True
    message: str
    user_id: UUID
    role_ids: list[UUID] = []
    count: int


class GrantPermissionsRequest(BaseModel):
    """Permissions to grant to or revoke from a role."""

    permission_ids: list[UUID] = Field(min_length=1)


class PermissionGrantResponse(BaseModel):
    """Result of a permission grant change."""

    success: bool = True
    message: str
    role_id: UUID
    permission_ids: list[UUID] = []
    count: int


class UserRolesResponse(BaseModel):
    """A user's active roles as the resolver sees them."""

    id: UUID
    email: str
    full_name: str | None
    roles: list[RoleSummary]
    is_super_user: bool
