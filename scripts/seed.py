#!/usr/bin/env python
"""
Seed the permission catalogue and default tenant roles.
"""

import argparse
import asyncio
import sys
from uuid import UUID


# Add src to path for imports
sys.path.insert(0, "src")

from erp_access.config import settings
from erp_access.core.cache.redis import close_redis_pool
from erp_access.core.database import async_session_factory
from erp_access.core.errors import NotFoundError
from erp_access.core.permissions import build_permission_resolver
from erp_access.core.permissions.seeds import (
    promote_super_user,
    seed_permissions,
    seed_tenant_roles,
)


async def main(tenant_id: UUID | None, admin_email: str | None) -> None:
    """Seed permissions, then tenant roles and the admin assignment if requested."""
    async with async_session_factory() as session:
        created = await seed_permissions(session)
        print(f"Seeded {created} permissions")

        if tenant_id:
            roles = await seed_tenant_roles(session, tenant_id)
            print(f"Created {len(roles)} roles for tenant {tenant_id}")
        await session.commit()

        if not (tenant_id and admin_email):
            return

        # Shares the running service's cache when the Redis backend is configured
        resolver = build_permission_resolver(settings, async_session_factory)
        try:
            assigned = await promote_super_user(session, resolver, admin_email, tenant_id)
        except NotFoundError as e:
            await session.rollback()
            print(f"Cannot assign admin role: {e.message} ({e.details})")
            sys.exit(1)
        finally:
            await close_redis_pool()

        if assigned:
            print(f"Assigned admin role to {admin_email}")
        else:
            print(f"{admin_email} already has the admin role")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed RBAC permissions and roles")
    parser.add_argument(
        "--tenant",
        "-t",
        type=UUID,
        default=None,
        help="Tenant id to create the default roles for",
    )
    parser.add_argument(
        "--admin-email",
        "-a",
        default=None,
        help="Email of a tenant user to give the admin role (requires --tenant)",
    )
    args = parser.parse_args()

    if args.admin_email and not args.tenant:
        parser.error("--admin-email requires --tenant")

    asyncio.run(main(args.tenant, args.admin_email))
