"""End-to-end access scenarios against the SQL store and the app.

Covers the lifecycle of a user gaining and losing roles, cache
coherence after grants, and guard denials over HTTP.
"""

import pytest
from fastapi import APIRouter, Depends
from sqlalchemy import delete

from erp_access.core.permissions.guards import require_permission
from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole


pytestmark = pytest.mark.integration


@pytest.fixture
async def catalogue(db, tenant):
    """manager holds purchase_order:approve; admin holds nothing explicitly."""
    approve = Permission(resource="purchase_order", action="approve")
    delete_location = Permission(resource="location", action="delete")
    manager = Role(name="Manager", slug="manager", tenant_id=tenant.id)
    admin = Role(name="Administrator", slug="admin", tenant_id=tenant.id)
    db.add_all([approve, delete_location, manager, admin])
    await db.flush()
    db.add(RolePermission(role_id=manager.id, permission_id=approve.id))
    await db.commit()
    return {"manager": manager, "admin": admin, "approve": approve, "location": delete_location}


@pytest.fixture
async def alice(make_user, db, catalogue):
    user = await make_user("alice@example.com")
    db.add(UserRole(user_id=user.id, role_id=catalogue["manager"].id))
    await db.commit()
    return user


async def unassign(db, user, role: Role) -> None:
    await db.execute(
        delete(UserRole).where(UserRole.user_id == user.id, UserRole.role_id == role.id)
    )
    await db.commit()


class TestRoleLifecycle:
    async def test_manager_can_approve_but_not_delete(self, resolver, alice):
        uid = str(alice.id)

        assert await resolver.has_permission(uid, "purchase_order", "approve") is True
        assert await resolver.has_permission(uid, "purchase_order", "delete") is False

    async def test_admin_assignment_grants_everything(self, resolver, db, alice, catalogue):
        uid = str(alice.id)
        await resolver.resolve(uid)

        db.add(UserRole(user_id=alice.id, role_id=catalogue["admin"].id))
        await db.commit()
        await resolver.invalidate(uid)

        assert await resolver.has_permission(uid, "anything", "anything") is True

    async def test_removing_roles_with_invalidation(self, resolver, db, alice, catalogue):
        uid = str(alice.id)
        db.add(UserRole(user_id=alice.id, role_id=catalogue["admin"].id))
        await db.commit()

        await unassign(db, alice, catalogue["manager"])
        await resolver.invalidate(uid)

        assert await resolver.has_role(uid, "manager") is False
        assert await resolver.has_permission(uid, "purchase_order", "approve") is True

        await unassign(db, alice, catalogue["admin"])
        await resolver.invalidate(uid)

        assert await resolver.has_permission(uid, "purchase_order", "approve") is False

    async def test_new_grant_visible_after_invalidate_all(
        self, resolver, db, alice, catalogue
    ):
        uid = str(alice.id)
        assert await resolver.has_permission(uid, "location", "delete") is False

        db.add(
            RolePermission(
                role_id=catalogue["manager"].id,
                permission_id=catalogue["location"].id,
            )
        )
        await db.commit()

        assert await resolver.has_permission(uid, "location", "delete") is False

        await resolver.invalidate_all()

        assert await resolver.has_permission(uid, "location", "delete") is True

    async def test_deactivated_role_grants_nothing(self, resolver, db, alice, catalogue):
        uid = str(alice.id)
        manager = catalogue["manager"]
        manager.is_active = False
        db.add(manager)
        await db.commit()
        await resolver.invalidate_all()

        assert await resolver.has_permission(uid, "purchase_order", "approve") is False
        assert await resolver.has_role(uid, "manager") is False


location_router = APIRouter()


@location_router.delete(
    "/locations/{location_id}",
    dependencies=[Depends(require_permission("location", "delete"))],
)
async def delete_location(location_id: str):
    return {"deleted": location_id}


class TestGuardOverHttp:
    @pytest.fixture
    def guarded_app(self, app):
        app.include_router(location_router, prefix="/api/v1")
        return app

    async def test_missing_grant_is_denied(self, guarded_app, client, alice, auth_headers):
        response = await client.delete(
            "/api/v1/locations/loc-1",
            headers=auth_headers(alice.id, alice.tenant_id),
        )

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "PERMISSION_DENIED"
        assert body["success"] is False
        assert body["message"] == "You don't have permission to delete location"

    async def test_granted_request_reaches_handler(
        self, guarded_app, client, db, alice, catalogue, auth_headers
    ):
        db.add(
            RolePermission(
                role_id=catalogue["manager"].id,
                permission_id=catalogue["location"].id,
            )
        )
        await db.commit()

        response = await client.delete(
            "/api/v1/locations/loc-1",
            headers=auth_headers(alice.id, alice.tenant_id),
        )

        assert response.status_code == 200
        assert response.json() == {"deleted": "loc-1"}

    async def test_no_subject_is_denied(self, guarded_app, client):
        response = await client.delete("/api/v1/locations/loc-1")

        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_CHECK_FAILED"
