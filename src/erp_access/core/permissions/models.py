"""Permission store database models.

This module defines the RBAC (Role-Based Access Control) tables:
- Role: A named bundle of permissions, tenant-scoped or global
- Permission: An action that can be performed on a resource
- UserRole: Assignment of a role to a user
- RolePermission: Grant of a permission to a role
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from erp_access.core.constants import (
    MAX_PERMISSION_ACTION_LENGTH,
    MAX_PERMISSION_RESOURCE_LENGTH,
    MAX_ROLE_NAME_LENGTH,
    MAX_ROLE_SLUG_LENGTH,
)
from erp_access.core.database.base import (
    Base,
    CreatedAtMixin,
    TimestampMixin,
    UUIDMixin,
)


class Role(Base, UUIDMixin, TimestampMixin):
    """Role model representing a named set of permissions.

    A role with no tenant is a system role visible to every tenant.
    The slug is unique per tenant; the ``admin`` slug marks the
    super-user role.

    Attributes:
        tenant_id: Owning tenant, or None for system roles
        name: Display name (e.g., "Warehouse Staff")
        slug: Stable identifier (e.g., "warehouse_staff")
        description: Human-readable description of the role
        is_active: Inactive roles grant nothing
    """

    __tablename__ = "roles"
    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_role_tenant_slug"),
    )

    tenant_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(MAX_ROLE_NAME_LENGTH),
        nullable=False,
    )
    slug: Mapped[str] = mapped_column(
        String(MAX_ROLE_SLUG_LENGTH),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, slug={self.slug}, tenant_id={self.tenant_id})>"


class Permission(Base, UUIDMixin, CreatedAtMixin):
    """Permission model representing an action on a resource.

    Permissions are global (not tenant-scoped). The vocabulary is open:
    new pairs are introduced by seeding, not by code changes.

    Examples:
        - resource="purchase_order", action="approve"
        - resource="location", action="manage"
        - resource="pos", action="operate"
    """

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("resource", "action", name="uq_permission_resource_action"),
    )

    resource: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_RESOURCE_LENGTH),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(
        String(MAX_PERMISSION_ACTION_LENGTH),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    @property
    def name(self) -> str:
        """Return the permission name as 'resource:action'."""
        return f"{self.resource}:{self.action}"

    def __repr__(self) -> str:
        return f"<Permission({self.resource}:{self.action})>"


class UserRole(Base, UUIDMixin):
    """Assignment of a role to a user.

    A user's effective permissions are the union of the permissions of
    all their active roles. ``assigned_by`` is cleared, not cascaded,
    when the granting user is deleted.
    """

    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_role"),)

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role_id={self.role_id})>"


class RolePermission(Base, UUIDMixin):
    """Grant of a permission to a role."""

    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_id: Mapped[UUID] = mapped_column(
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    granted_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission_id={self.permission_id})>"
