"""Permission repository for catalogue reads."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from erp_access.core.permissions.models import Permission


class PermissionRepository:
    """Read access to the permission catalogue.

    Permissions are global and seeded; nothing here writes.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def search(
        self,
        resource: str | None = None,
        action: str | None = None,
        page: int = 1,
        page_size: int = 100,
    ) -> tuple[list[Permission], int]:
        """List permissions with pagination, ordered by resource then action.

        ``resource`` and ``action`` match case-insensitive substrings.

        Returns:
            Tuple of (permissions list, total count)
        """
        filters = []
        if resource:
            filters.append(Permission.resource.ilike(f"%{resource}%"))
        if action:
            filters.append(Permission.action.ilike(f"%{action}%"))

        count_stmt = select(func.count()).select_from(Permission).where(*filters)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar_one()

        offset = (page - 1) * page_size
        stmt = (
            select(Permission)
            .where(*filters)
            .order_by(Permission.resource, Permission.action)
            .offset(offset)
            .limit(page_size)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def distinct_resources(self) -> list[str]:
        stmt = select(Permission.resource).distinct().order_by(Permission.resource)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def distinct_actions(self) -> list[str]:
        stmt = select(Permission.action).distinct().order_by(Permission.action)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
