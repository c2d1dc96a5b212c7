"""Permission store: read access to the RBAC tables.

The resolver is the only consumer. Keeping every read behind
``PermissionStore`` leaves a single seam for changing storage.
"""

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from erp_access.core.errors import InvalidSubjectError, StoreUnavailableError
from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole
from erp_access.core.permissions.types import PermissionData, RoleData


logger = structlog.get_logger()


class PermissionStore(Protocol):
    """Read contract the resolver depends on."""

    async def find_active_roles_for_user(self, user_id: str) -> list[RoleData]:
        """Return the active roles assigned to a user."""
        ...

    async def find_permissions_for_roles(
        self, role_ids: Collection[UUID]
    ) -> list[PermissionData]:
        """Return the de-duplicated permissions granted to any of the roles."""
        ...


def parse_user_id(user_id: str | UUID) -> UUID:
    """Parse a subject id into the UUID stored in ``user_roles``.

    Raises:
        InvalidSubjectError: If the id is not a UUID
    """
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError:
        raise InvalidSubjectError(
            "Malformed subject identifier",
            details={"user_id": str(user_id)},
        ) from None


class SqlAlchemyPermissionStore:
    """PermissionStore backed by the SQLAlchemy models.

    Opens a short-lived session per query from the given factory, so a
    single store can be shared process-wide by the resolver. Reads are
    not wrapped in an explicit transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_active_roles_for_user(self, user_id: str) -> list[RoleData]:
        """Get the active roles assigned to a user.

        Args:
            user_id: The subject id (UUID string)

        Returns:
            Active roles, in no particular order

        Raises:
            InvalidSubjectError: If the id is not a UUID
            StoreUnavailableError: If the query fails
        """
        uid = parse_user_id(user_id)
        stmt = (
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == uid,
                Role.is_active.is_(True),
            )
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                roles = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("permission_store_query_failed", query="roles", error=str(exc))
            raise StoreUnavailableError("Permission store query failed") from exc

        return [RoleData.model_validate(role) for role in roles]

    async def find_permissions_for_roles(
        self, role_ids: Collection[UUID]
    ) -> list[PermissionData]:
        """Get the union of permissions granted to the given roles.

        Args:
            role_ids: Role ids to look up

        Returns:
            Permissions, each ``(resource, action)`` pair at most once

        Raises:
            StoreUnavailableError: If the query fails
        """
        if not role_ids:
            return []

        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id.in_(list(role_ids)))
            .distinct()
        )
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                permissions = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(
                "permission_store_query_failed", query="permissions", error=str(exc)
            )
            raise StoreUnavailableError("Permission store query failed") from exc

        unique: dict[tuple[str, str], PermissionData] = {}
        for permission in permissions:
            data = PermissionData.model_validate(permission)
            unique.setdefault(data.key, data)
        return list(unique.values())
