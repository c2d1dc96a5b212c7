"""Default permission catalogue and role bootstrap.

Seeding is idempotent: existing permissions, roles and assignments are
left untouched. Callers own the transaction and must commit, except
for ``promote_super_user``.
"""

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erp_access.core.constants import SUPER_USER_ROLE_SLUG
from erp_access.core.errors import NotFoundError
from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole
from erp_access.core.permissions.resolver import PermissionResolver
from erp_access.core.permissions.types import PermissionKey
from erp_access.modules.users.models import User


logger = structlog.get_logger()


# (resource, action, description)
DEFAULT_PERMISSIONS: list[tuple[str, str, str]] = [
    # Tenant
    ("tenant", "manage", "Full tenant management (create, update, delete tenants)"),
    ("tenant", "view", "View tenant information"),
    # Location
    ("location", "create", "Create new locations"),
    ("location", "read", "View location details"),
    ("location", "update", "Update location information"),
    ("location", "delete", "Delete locations"),
    ("location", "manage", "Full location management"),
    # User
    ("user", "create", "Create new users"),
    ("user", "read", "View user details"),
    ("user", "update", "Update user information"),
    ("user", "delete", "Delete users"),
    ("user", "manage", "Full user management"),
    # Role
    ("role", "create", "Create new roles"),
    ("role", "read", "View role details"),
    ("role", "update", "Update role information"),
    ("role", "delete", "Delete roles"),
    ("role", "manage_permissions", "Assign permissions to roles"),
    ("role", "manage", "Full role management"),
    # Product
    ("product", "create", "Create new products"),
    ("product", "read", "View product details"),
    ("product", "update", "Update product information"),
    ("product", "delete", "Delete products"),
    ("product", "manage_prices", "Manage product pricing"),
    ("product", "manage", "Full product management"),
    # Purchase order
    ("purchase_order", "create", "Create purchase orders"),
    ("purchase_order", "read", "View purchase orders"),
    ("purchase_order", "update", "Update purchase orders"),
    ("purchase_order", "delete", "Delete purchase orders"),
    ("purchase_order", "approve", "Approve purchase orders"),
    ("purchase_order", "reject", "Reject purchase orders"),
    # Goods receipt
    ("goods_receipt", "create", "Create goods receipts"),
    ("goods_receipt", "read", "View goods receipts"),
    ("goods_receipt", "update", "Update goods receipts"),
    ("goods_receipt", "delete", "Delete goods receipts"),
    # Inventory
    ("inventory", "view", "View inventory levels"),
    ("inventory", "manage_stock", "Manage stock levels"),
    ("inventory", "adjust", "Create stock adjustments"),
    ("inventory", "count", "Perform stock counts"),
    # Transfer
    ("transfer", "create", "Create stock transfers"),
    ("transfer", "read", "View stock transfers"),
    ("transfer", "update", "Update stock transfers"),
    ("transfer", "approve", "Approve stock transfers"),
    ("transfer", "reject", "Reject stock transfers"),
    # Requisition
    ("requisition", "create", "Create requisitions"),
    ("requisition", "read", "View requisitions"),
    ("requisition", "update", "Update requisitions"),
    ("requisition", "approve", "Approve requisitions"),
    ("requisition", "reject", "Reject requisitions"),
    # Production
    ("recipe", "create", "Create recipes"),
    ("recipe", "read", "View recipes"),
    ("recipe", "update", "Update recipes"),
    ("recipe", "delete", "Delete recipes"),
    ("production_order", "create", "Create production orders"),
    ("production_order", "read", "View production orders"),
    ("production_order", "update", "Update production orders"),
    ("production_order", "delete", "Delete production orders"),
    # POS
    ("pos", "operate", "Operate POS terminal"),
    ("pos", "view_reports", "View POS reports"),
    ("pos", "manage", "Full POS management including shift operations"),
    # Order
    ("order", "create", "Create orders"),
    ("order", "read", "View orders"),
    ("order", "update", "Update orders"),
    ("order", "void", "Void orders"),
    ("order", "refund", "Process refunds"),
    # Customer
    ("customer", "create", "Create customers"),
    ("customer", "read", "View customer details"),
    ("customer", "update", "Update customer information"),
    ("customer", "delete", "Delete customers"),
    # Report
    ("report", "view_reports", "View all reports"),
    ("report", "export", "Export reports"),
    # Temperature and quality
    ("temperature", "create", "Record temperature logs"),
    ("temperature", "read", "View temperature logs"),
    ("alert", "read", "View quality alerts"),
    ("alert", "manage", "Manage and resolve quality alerts"),
    # Supplier
    ("supplier", "create", "Create suppliers"),
    ("supplier", "read", "View supplier details"),
    ("supplier", "update", "Update supplier information"),
    ("supplier", "delete", "Delete suppliers"),
    # Units of measure
    ("uom", "create", "Create units of measure"),
    ("uom", "read", "View units of measure"),
    ("uom", "update", "Update units of measure"),
    ("uom", "delete", "Delete units of measure"),
]


# slug -> name, description, "resource:action" grants
DEFAULT_ROLES: dict[str, dict[str, str | list[str]]] = {
    SUPER_USER_ROLE_SLUG: {
        "name": "Administrator",
        "description": "Full access to all tenant features",
        "permissions": [
            "location:manage",
            "user:manage",
            "role:manage",
            "role:manage_permissions",
            "product:manage",
            "product:manage_prices",
            "purchase_order:approve",
            "transfer:approve",
            "requisition:approve",
            "pos:manage",
            "report:view_reports",
            "report:export",
        ],
    },
    "manager": {
        "name": "Manager",
        "description": "Manage operations and approve transactions",
        "permissions": [
            "location:read",
            "user:read",
            "product:read",
            "product:update",
            "purchase_order:create",
            "purchase_order:read",
            "purchase_order:update",
            "purchase_order:approve",
            "transfer:approve",
            "requisition:approve",
            "inventory:view",
            "inventory:manage_stock",
            "pos:manage",
            "report:view_reports",
        ],
    },
    "warehouse_staff": {
        "name": "Warehouse Staff",
        "description": "Manage warehouse operations and inventory",
        "permissions": [
            "product:read",
            "goods_receipt:create",
            "goods_receipt:read",
            "goods_receipt:update",
            "transfer:create",
            "transfer:read",
            "transfer:update",
            "requisition:create",
            "requisition:read",
            "inventory:view",
            "inventory:adjust",
            "inventory:count",
        ],
    },
    "kitchen_staff": {
        "name": "Kitchen Staff",
        "description": "Manage production and recipes",
        "permissions": [
            "recipe:read",
            "production_order:create",
            "production_order:read",
            "production_order:update",
            "inventory:view",
            "temperature:create",
            "temperature:read",
        ],
    },
    "cashier": {
        "name": "Cashier",
        "description": "Operate POS and process sales",
        "permissions": [
            "pos:operate",
            "order:create",
            "order:read",
            "customer:read",
            "customer:create",
        ],
    },
    "staff": {
        "name": "Staff",
        "description": "General staff with basic access",
        "permissions": ["product:read", "inventory:view", "order:read"],
    },
}


async def seed_permissions(session: AsyncSession) -> int:
    """Insert every catalogue permission that is not already present.

    Returns:
        Number of permissions created
    """
    result = await session.execute(select(Permission.resource, Permission.action))
    existing = {PermissionKey(resource, action) for resource, action in result.all()}

    created = [
        Permission(resource=resource, action=action, description=description)
        for resource, action, description in DEFAULT_PERMISSIONS
        if PermissionKey(resource, action) not in existing
    ]
    session.add_all(created)
    await session.flush()

    logger.info("permissions_seeded", created=len(created), total=len(DEFAULT_PERMISSIONS))
    return len(created)


async def seed_tenant_roles(session: AsyncSession, tenant_id: UUID) -> list[Role]:
    """Create the default roles for a tenant and grant their permissions.

    Roles whose slug already exists for the tenant are skipped, grants
    included. Grants naming a permission that has not been seeded are
    skipped with a warning.

    Returns:
        The roles that were created
    """
    result = await session.execute(select(Role.slug).where(Role.tenant_id == tenant_id))
    existing_slugs = set(result.scalars().all())

    result = await session.execute(select(Permission))
    by_key = {permission.name: permission for permission in result.scalars().all()}

    created: list[Role] = []
    for slug, config in DEFAULT_ROLES.items():
        if slug in existing_slugs:
            logger.info("role_seed_skipped", tenant_id=str(tenant_id), slug=slug)
            continue

        role = Role(
            tenant_id=tenant_id,
            name=str(config["name"]),
            slug=slug,
            description=str(config["description"]),
            is_active=True,
        )
        session.add(role)
        await session.flush()

        granted = 0
        for name in config["permissions"]:
            permission = by_key.get(name)
            if permission is None:
                logger.warning("role_seed_permission_missing", slug=slug, permission=name)
                continue
            session.add(RolePermission(role_id=role.id, permission_id=permission.id))
            granted += 1
        await session.flush()

        logger.info(
            "role_seeded",
            tenant_id=str(tenant_id),
            slug=slug,
            permissions=granted,
        )
        created.append(role)

    return created


async def _get_tenant_user(session: AsyncSession, email: str, tenant_id: UUID) -> User:
    result = await session.execute(
        select(User).where(User.email == email, User.tenant_id == tenant_id)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found", resource="user", resource_id=email)
    return user


async def assign_super_user(session: AsyncSession, email: str, tenant_id: UUID) -> bool:
    """Give a tenant user the tenant's super-user role.

    Returns:
        True if an assignment was created, False if it already existed

    Raises:
        NotFoundError: If the user or the tenant's super-user role is missing
    """
    user = await _get_tenant_user(session, email, tenant_id)

    result = await session.execute(
        select(Role).where(Role.slug == SUPER_USER_ROLE_SLUG, Role.tenant_id == tenant_id)
    )
    role = result.scalar_one_or_none()
    if role is None:
        raise NotFoundError(
            "Super user role not found",
            resource="role",
            resource_id=SUPER_USER_ROLE_SLUG,
        )

    result = await session.execute(
        select(UserRole.id).where(UserRole.user_id == user.id, UserRole.role_id == role.id)
    )
    if result.scalar_one_or_none() is not None:
        return False

    session.add(UserRole(user_id=user.id, role_id=role.id))
    await session.flush()
    logger.info("super_user_assigned", user_id=str(user.id), tenant_id=str(tenant_id))
    return True


async def promote_super_user(
    session: AsyncSession,
    resolver: PermissionResolver,
    email: str,
    tenant_id: UUID,
) -> bool:
    """Assign the super-user role, commit, then evict the user's cached set.

    Commits before evicting, so a reload reads the new assignment.

    Returns:
        True if an assignment was created, False if it already existed

    Raises:
        NotFoundError: If the user or the tenant's super-user role is missing
    """
    user = await _get_tenant_user(session, email, tenant_id)
    assigned = await assign_super_user(session, email, tenant_id)
    await session.commit()

    if assigned:
        await resolver.invalidate(user.id)
    return assigned
