"""Role management service.

Every write commits before invalidating the permission cache, so a
reload triggered by the invalidation reads the committed state.

- Changes to a user's roles invalidate that user.
- Changes to a role's grants, slug, active flag or existence invalidate
  everyone, since any number of users may hold the role.

Every method takes a ``RoleScope``. Roles and users outside it are
reported as not found.
"""

from collections.abc import Collection
from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends

from erp_access.api.dependencies import DBSession
from erp_access.core.errors import ConflictError, NotFoundError
from erp_access.core.permissions.dependencies import Resolver
from erp_access.core.permissions.models import Permission, Role
from erp_access.core.permissions.types import EffectivePermissionSet
from erp_access.modules.roles.repos import RoleRepository
from erp_access.modules.roles.schemas import UNRESTRICTED, RoleScope
from erp_access.modules.users.models import User


logger = structlog.get_logger()


class RoleService:
    """Service for role management, role assignment and permission grants."""

    def __init__(self, session: DBSession, resolver: Resolver) -> None:
        self.session = session
        self.repo = RoleRepository(session)
        self.resolver = resolver

    # ============================================================
    # Role reads
    # ============================================================

    async def list_roles(
        self,
        scope: RoleScope = UNRESTRICTED,
        name: str | None = None,
        slug: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Role], int]:
        """List the roles the scope can read, system roles included.

        Returns:
            Tuple of (roles list, total count)
        """
        return await self.repo.list_roles(
            scope.readable(), name, slug, is_active, page, page_size
        )

    async def get_role(self, role_id: UUID, scope: RoleScope = UNRESTRICTED) -> Role:
        """Get a role the scope can read.

        Raises:
            NotFoundError: If the role does not exist or is out of scope
        """
        return await self._require_role(role_id, scope.readable())

    async def get_role_permissions(
        self, role_id: UUID, scope: RoleScope = UNRESTRICTED
    ) -> tuple[Role, list[Permission]]:
        role = await self._require_role(role_id, scope.readable())
        return role, await self.repo.get_role_permissions(role.id)

    async def get_user_roles(
        self, user_id: UUID, scope: RoleScope = UNRESTRICTED
    ) -> tuple[User, EffectivePermissionSet]:
        """Get a user and their effective set as the resolver sees it.

        Raises:
            NotFoundError: If the user does not exist or is out of scope
        """
        user = await self._require_user(user_id, scope)
        return user, await self.resolver.resolve(user.id)

    # ============================================================
    # Role writes
    # ============================================================

    async def create_role(
        self,
        name: str,
        slug: str,
        description: str | None = None,
        is_active: bool = True,
        scope: RoleScope = UNRESTRICTED,
    ) -> Role:
        """Create a role in the scope's tenant.

        An unrestricted scope creates a system role. No user holds a new
        role yet, so nothing is invalidated.

        Raises:
            ConflictError: If the slug is taken in that tenant
        """
        await self._require_free_slug(slug, scope.tenant_id)
        role = await self.repo.create(
            Role(
                tenant_id=scope.tenant_id,
                name=name,
                slug=slug,
                description=description,
                is_active=is_active,
            )
        )
        await self.session.commit()

        logger.info(
            "role_created",
            role_id=str(role.id),
            slug=slug,
            tenant_id=str(scope.tenant_id) if scope.tenant_id else None,
        )
        return role

    async def update_role(
        self,
        role_id: UUID,
        scope: RoleScope = UNRESTRICTED,
        *,
        name: str | None = None,
        slug: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Role:
        """Update a role's fields. ``None`` leaves a field unchanged.

        Raises:
            NotFoundError: If the role does not exist or is out of scope
            ConflictError: If the new slug is taken in the role's tenant
        """
        role = await self._require_role(role_id, scope)
        if slug is not None and slug != role.slug:
            await self._require_free_slug(slug, role.tenant_id)
            role.slug = slug
        if name is not None:
            role.name = name
        if description is not None:
            role.description = description
        if is_active is not None:
            role.is_active = is_active
        role = await self.repo.update(role)
        await self.session.commit()

        await self.resolver.invalidate_all()
        logger.info("role_updated", role_id=str(role_id), is_active=role.is_active)
        return role

    async def set_role_active(
        self,
        role_id: UUID,
        is_active: bool,
        scope: RoleScope = UNRESTRICTED,
    ) -> Role:
        """Activate or deactivate a role.

        Raises:
            NotFoundError: If the role does not exist or is out of scope
        """
        return await self.update_role(role_id, scope, is_active=is_active)

    async def delete_role(self, role_id: UUID, scope: RoleScope = UNRESTRICTED) -> None:
        """Delete a role together with its assignments and grants.

        Raises:
            NotFoundError: If the role does not exist or is out of scope
        """
        role = await self._require_role(role_id, scope)
        await self.repo.delete(role)
        await self.session.commit()

        await self.resolver.invalidate_all()
        logger.info("role_deleted", role_id=str(role_id), slug=role.slug)

    # ============================================================
    # Assignments
    # ============================================================

    async def assign_roles(
        self,
        user_id: UUID,
        role_ids: Collection[UUID],
        assigned_by: UUID | None = None,
        scope: RoleScope = UNRESTRICTED,
    ) -> list[UUID]:
        """Assign roles to a user.

        Pairs that already exist are skipped. Each role must be a system
        role or belong to the user's tenant.

        Args:
            user_id: The user receiving the roles
            role_ids: Roles to assign
            assigned_by: The acting user, recorded on the assignment
            scope: Users and roles the caller may manage

        Returns:
            Ids of the roles that were newly assigned

        Raises:
            NotFoundError: If the user or any role does not exist or is
                out of scope
        """
        wanted = set(role_ids)
        user = await self._require_user(user_id, scope)
        roles = await self._require_roles(wanted, scope)
        foreign = {r.id for r in roles if r.tenant_id not in (None, user.tenant_id)}
        if foreign:
            raise NotFoundError(
                "Role not found",
                resource="role",
                resource_id=", ".join(sorted(str(r) for r in foreign)),
            )

        existing = await self.repo.get_assigned_role_ids(user_id)
        new_ids = [role_id for role_id in wanted if role_id not in existing]
        if new_ids:
            await self.repo.add_user_roles(user_id, new_ids, assigned_by)
        await self.session.commit()

        await self.resolver.invalidate(user_id)
        logger.info(
            "roles_assigned",
            user_id=str(user_id),
            role_ids=[str(r) for r in new_ids],
            assigned_by=str(assigned_by) if assigned_by else None,
        )
        return new_ids

    async def remove_roles(
        self,
        user_id: UUID,
        role_ids: Collection[UUID],
        scope: RoleScope = UNRESTRICTED,
    ) -> int:
        """Remove roles from a user.

        Only roles inside the scope are removed; others are ignored.

        Returns:
            Number of assignments removed

        Raises:
            NotFoundError: If the user does not exist or is out of scope
        """
        await self._require_user(user_id, scope)
        in_scope = {r.id for r in await self.repo.get_roles(set(role_ids), scope)}
        removed = await self.repo.delete_user_roles(user_id, in_scope)
        await self.session.commit()

        await self.resolver.invalidate(user_id)
        logger.info("roles_removed", user_id=str(user_id), removed=removed)
        return removed

    # ============================================================
    # Grants
    # ============================================================

    async def grant_permissions(
        self,
        role_id: UUID,
        permission_ids: Collection[UUID],
        granted_by: UUID | None = None,
        scope: RoleScope = UNRESTRICTED,
    ) -> list[UUID]:
        """Grant permissions to a role.

        Returns:
            Ids of the permissions that were newly granted

        Raises:
            NotFoundError: If the role is missing or out of scope, or any
                permission does not exist
        """
        wanted = set(permission_ids)
        await self._require_role(role_id, scope)

        found = {p.id for p in await self.repo.get_permissions(wanted)}
        missing = wanted - found
        if missing:
            raise NotFoundError(
                "Permission not found",
                resource="permission",
                resource_id=", ".join(sorted(str(p) for p in missing)),
            )

        existing = await self.repo.get_granted_permission_ids(role_id)
        new_ids = [pid for pid in wanted if pid not in existing]
        if new_ids:
            await self.repo.add_role_permissions(role_id, new_ids, granted_by)
        await self.session.commit()

        await self.resolver.invalidate_all()
        logger.info(
            "permissions_granted",
            role_id=str(role_id),
            permission_ids=[str(p) for p in new_ids],
        )
        return new_ids

    async def revoke_permissions(
        self,
        role_id: UUID,
        permission_ids: Collection[UUID],
        scope: RoleScope = UNRESTRICTED,
    ) -> int:
        """Revoke permissions from a role.

        Returns:
            Number of grants removed

        Raises:
            NotFoundError: If the role does not exist or is out of scope
        """
        await self._require_role(role_id, scope)
        removed = await self.repo.delete_role_permissions(role_id, set(permission_ids))
        await self.session.commit()

        await self.resolver.invalidate_all()
        logger.info("permissions_revoked", role_id=str(role_id), removed=removed)
        return removed

    # ============================================================
    # Lookups
    # ============================================================

    async def _require_user(self, user_id: UUID, scope: RoleScope) -> User:
        user = await self.repo.get_user(user_id, scope.tenant_id)
        if user is None:
            raise NotFoundError("User not found", resource="user", resource_id=str(user_id))
        return user

    async def _require_role(self, role_id: UUID, scope: RoleScope) -> Role:
        role = await self.repo.get_role(role_id, scope)
        if role is None:
            raise NotFoundError("Role not found", resource="role", resource_id=str(role_id))
        return role

    async def _require_roles(self, role_ids: set[UUID], scope: RoleScope) -> list[Role]:
        roles = await self.repo.get_roles(role_ids, scope)
        missing = role_ids - {role.id for role in roles}
        if missing:
            raise NotFoundError(
                "Role not found",
                resource="role",
                resource_id=", ".join(sorted(str(r) for r in missing)),
            )
        return roles

    async def _require_free_slug(self, slug: str, tenant_id: UUID | None) -> None:
        if await self.repo.get_role_by_slug(slug, tenant_id) is not None:
            raise ConflictError(
                "Role slug already exists",
                details={"resource": "role", "slug": slug},
            )


# Type alias for dependency injection
RoleSvc = Annotated[RoleService, Depends(RoleService)]
