"""Role repository for role management and assignment writes."""

from collections.abc import Collection
from typing import Any
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole
from erp_access.modules.roles.schemas import RoleScope
from erp_access.modules.users.models import User


def _scoped(stmt: Select[Any], scope: RoleScope) -> Select[Any]:
    """Restrict a role query to the roles visible in ``scope``."""
    if scope.tenant_id is None:
        if scope.include_system_roles:
            return stmt
        return stmt.where(Role.tenant_id.is_not(None))
    if scope.include_system_roles:
        return stmt.where(or_(Role.tenant_id == scope.tenant_id, Role.tenant_id.is_(None)))
    return stmt.where(Role.tenant_id == scope.tenant_id)


class RoleRepository:
    """Repository for Role, UserRole and RolePermission operations.

    Role lookups take a ``RoleScope``: a tenant scope sees only that
    tenant's roles, plus system roles when the scope includes them.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ============================================================
    # Users
    # ============================================================

    async def get_user(self, user_id: UUID, tenant_id: UUID | None = None) -> User | None:
        stmt = select(User).where(User.id == user_id)
        if tenant_id:
            stmt = stmt.where(User.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # ============================================================
    # Roles
    # ============================================================

    async def get_role(self, role_id: UUID, scope: RoleScope) -> Role | None:
        stmt = _scoped(select(Role).where(Role.id == role_id), scope)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_roles(self, role_ids: Collection[UUID], scope: RoleScope) -> list[Role]:
        """Get the roles matching ``role_ids`` that are visible in ``scope``."""
        if not role_ids:
            return []
        stmt = _scoped(select(Role).where(Role.id.in_(list(role_ids))), scope)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_role_by_slug(self, slug: str, tenant_id: UUID | None) -> Role | None:
        """Get a role by slug within one tenant, or among system roles."""
        stmt = select(Role).where(Role.slug == slug)
        if tenant_id is None:
            stmt = stmt.where(Role.tenant_id.is_(None))
        else:
            stmt = stmt.where(Role.tenant_id == tenant_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_roles(
        self,
        scope: RoleScope,
        name: str | None = None,
        slug: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Role], int]:
        """List roles visible in ``scope`` with pagination.

        ``name`` and ``slug`` match case-insensitive substrings.

        Returns:
            Tuple of (roles list, total count)
        """
        filters = []
        if name:
            filters.append(Role.name.ilike(f"%{name}%"))
        if slug:
            filters.append(Role.slug.ilike(f"%{slug}%"))
        if is_active is not None:
            filters.append(Role.is_active == is_active)

        count_stmt = _scoped(select(func.count()).select_from(Role), scope).where(*filters)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar_one()

        offset = (page - 1) * page_size
        stmt = (
            _scoped(select(Role), scope)
            .where(*filters)
            .order_by(Role.name)
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def create(self, role: Role) -> Role:
        self.session.add(role)
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def update(self, role: Role) -> Role:
        await self.session.flush()
        await self.session.refresh(role)
        return role

    async def delete(self, role: Role) -> None:
        """Delete a role with its assignments and grants.

        Dependent rows are deleted here rather than left to ON DELETE
        CASCADE, which SQLite only enforces when foreign keys are on.
        """
        await self.session.execute(delete(UserRole).where(UserRole.role_id == role.id))
        await self.session.execute(
            delete(RolePermission).where(RolePermission.role_id == role.id)
        )
        await self.session.delete(role)
        await self.session.flush()

    # ============================================================
    # Permissions
    # ============================================================

    async def get_permissions(self, permission_ids: Collection[UUID]) -> list[Permission]:
        if not permission_ids:
            return []
        stmt = select(Permission).where(Permission.id.in_(list(permission_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_role_permissions(self, role_id: UUID) -> list[Permission]:
        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.resource, Permission.action)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ============================================================
    # Assignments and grants
    # ============================================================

    async def get_assigned_role_ids(self, user_id: UUID) -> set[UUID]:
        stmt = select(UserRole.role_id).where(UserRole.user_id == user_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_granted_permission_ids(self, role_id: UUID) -> set[UUID]:
        stmt = select(RolePermission.permission_id).where(RolePermission.role_id == role_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def add_user_roles(
        self,
        user_id: UUID,
        role_ids: Collection[UUID],
        assigned_by: UUID | None = None,
    ) -> None:
        self.session.add_all(
            UserRole(user_id=user_id, role_id=role_id, assigned_by=assigned_by)
            for role_id in role_ids
        )
        await self.session.flush()

    async def delete_user_roles(self, user_id: UUID, role_ids: Collection[UUID]) -> int:
        """Delete role assignments.

        Returns:
            Number of assignments removed
        """
        if not role_ids:
            return 0
        stmt = delete(UserRole).where(
            UserRole.user_id == user_id,
            UserRole.role_id.in_(list(role_ids)),
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def add_role_permissions(
        self,
        role_id: UUID,
        permission_ids: Collection[UUID],
        granted_by: UUID | None = None,
    ) -> None:
        self.session.add_all(
            RolePermission(role_id=role_id, permission_id=permission_id, granted_by=granted_by)
            for permission_id in permission_ids
        )
        await self.session.flush()

    async def delete_role_permissions(
        self, role_id: UUID, permission_ids: Collection[UUID]
    ) -> int:
        """Delete permission grants.

        Returns:
            Number of grants removed
        """
        if not permission_ids:
            return 0
        stmt = delete(RolePermission).where(
            RolePermission.role_id == role_id,
            RolePermission.permission_id.in_(list(permission_ids)),
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
