"""Shared API dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from erp_access.core.database import get_db


# Type alias for database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_current_tenant_id(request: Request) -> UUID | None:
    """Get the tenant id carried by the access token, if any."""
    return getattr(request.state, "tenant_id", None)


CurrentTenantId = Annotated[UUID | None, Depends(get_current_tenant_id)]
