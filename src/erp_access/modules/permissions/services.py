"""Permission catalogue service."""

from typing import Annotated

from fastapi import Depends

from erp_access.api.dependencies import DBSession
from erp_access.core.permissions.models import Permission
from erp_access.modules.permissions.repos import PermissionRepository


class PermissionCatalogService:
    """Service for browsing the seeded permission catalogue."""

    def __init__(self, session: DBSession) -> None:
        self.repo = PermissionRepository(session)

    async def list_permissions(
        self,
        resource: str | None = None,
        action: str | None = None,
        page: int = 1,
        page_size: int = 100,
    ) -> tuple[list[Permission], int]:
        """List catalogue permissions.

        Args:
            resource: Optional substring filter on the resource
            action: Optional substring filter on the action
            page: Page number (1-indexed)
            page_size: Items per page

        Returns:
            Tuple of (permissions list, total count)
        """
        return await self.repo.search(resource, action, page, page_size)

    async def list_resources(self) -> list[str]:
        return await self.repo.distinct_resources()

    async def list_actions(self) -> list[str]:
        return await self.repo.distinct_actions()


# Type alias for dependency injection
PermissionCatalogSvc = Annotated[PermissionCatalogService, Depends(PermissionCatalogService)]
