"""Integration tests for SqlAlchemyPermissionStore on SQLite."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_access.core.errors import InvalidSubjectError, StoreUnavailableError
from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole
from erp_access.core.permissions.store import SqlAlchemyPermissionStore


pytestmark = pytest.mark.integration


@pytest.fixture
def store(session_factory) -> SqlAlchemyPermissionStore:
    return SqlAlchemyPermissionStore(session_factory)


async def add_role(db: AsyncSession, slug: str, tenant_id=None, is_active=True) -> Role:
    role = Role(name=slug.title(), slug=slug, tenant_id=tenant_id, is_active=is_active)
    db.add(role)
    await db.flush()
    return role


async def add_permission(db: AsyncSession, name: str) -> Permission:
    resource, action = name.split(":")
    perm = Permission(resource=resource, action=action)
    db.add(perm)
    await db.flush()
    return perm


class TestFindActiveRoles:
    async def test_returns_only_active_assigned_roles(self, db, store, tenant, make_user):
        user = await make_user("alice@example.com")
        other = await make_user("bob@example.com")
        manager = await add_role(db, "manager", tenant.id)
        retired = await add_role(db, "retired", tenant.id, is_active=False)
        cashier = await add_role(db, "cashier", tenant.id)
        db.add_all(
            [
                UserRole(user_id=user.id, role_id=manager.id),
                UserRole(user_id=user.id, role_id=retired.id),
                UserRole(user_id=other.id, role_id=cashier.id),
            ]
        )
        await db.commit()

        roles = await store.find_active_roles_for_user(str(user.id))

        assert [r.slug for r in roles] == ["manager"]
        assert roles[0].id == manager.id
        assert roles[0].tenant_id == tenant.id

    async def test_includes_system_roles(self, db, store, make_user):
        user = await make_user("alice@example.com")
        system_admin = await add_role(db, "admin", tenant_id=None)
        db.add(UserRole(user_id=user.id, role_id=system_admin.id))
        await db.commit()

        roles = await store.find_active_roles_for_user(str(user.id))

        assert len(roles) == 1
        assert roles[0].tenant_id is None

    async def test_unknown_user_has_no_roles(self, store):
        assert await store.find_active_roles_for_user(str(uuid4())) == []

    async def test_malformed_user_id(self, store):
        with pytest.raises(InvalidSubjectError):
            await store.find_active_roles_for_user("alice")


class TestFindPermissions:
    async def test_union_is_deduplicated(self, db, store):
        manager = await add_role(db, "manager")
        staff = await add_role(db, "staff")
        approve = await add_permission(db, "purchase_order:approve")
        view = await add_permission(db, "inventory:view")
        read = await add_permission(db, "order:read")
        db.add_all(
            [
                RolePermission(role_id=manager.id, permission_id=approve.id),
                RolePermission(role_id=manager.id, permission_id=view.id),
                RolePermission(role_id=staff.id, permission_id=view.id),
                RolePermission(role_id=staff.id, permission_id=read.id),
            ]
        )
        await db.commit()

        permissions = await store.find_permissions_for_roles({manager.id, staff.id})

        names = sorted(f"{p.resource}:{p.action}" for p in permissions)
        assert names == ["inventory:view", "order:read", "purchase_order:approve"]

    async def test_empty_role_ids_returns_empty(self, store):
        assert await store.find_permissions_for_roles(set()) == []


async def test_database_errors_become_store_unavailable(store, engine):
    async with engine.begin() as conn:
        await conn.exec_driver_sql("DROP TABLE user_roles")

    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.find_active_roles_for_user(str(uuid4()))

    assert isinstance(exc_info.value.__cause__, OperationalError)
