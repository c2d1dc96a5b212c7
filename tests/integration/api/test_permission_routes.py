"""Tests for the permission catalogue and the caller's own permission endpoints."""

import pytest

from erp_access.core.permissions.models import Permission, Role, RolePermission, UserRole


pytestmark = pytest.mark.integration


@pytest.fixture
async def cashier(db, tenant, make_user):
    user = await make_user("carol@example.com")
    role = Role(name="Cashier", slug="cashier", tenant_id=tenant.id)
    retired = Role(name="Retired", slug="retired", tenant_id=tenant.id, is_active=False)
    operate = Permission(resource="pos", action="operate", description="Operate POS")
    create = Permission(resource="order", action="create")
    refund = Permission(resource="order", action="refund")
    db.add_all([role, retired, operate, create, refund])
    await db.flush()
    db.add_all(
        [
            UserRole(user_id=user.id, role_id=role.id),
            UserRole(user_id=user.id, role_id=retired.id),
            RolePermission(role_id=role.id, permission_id=operate.id),
            RolePermission(role_id=role.id, permission_id=create.id),
            RolePermission(role_id=retired.id, permission_id=refund.id),
        ]
    )
    await db.commit()
    return user


class TestMyPermissions:
    async def test_lists_active_roles_and_permissions(self, client, cashier, auth_headers):
        response = await client.get(
            "/api/v1/permissions/me",
            headers=auth_headers(cashier.id, cashier.tenant_id),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == str(cashier.id)
        assert [r["slug"] for r in data["roles"]] == ["cashier"]
        assert sorted((p["resource"], p["action"]) for p in data["permissions"]) == [
            ("order", "create"),
            ("pos", "operate"),
        ]
        assert data["is_super_user"] is False

    async def test_permission_strings_are_sorted(self, client, cashier, auth_headers):
        response = await client.get(
            "/api/v1/permissions/my-permissions",
            headers=auth_headers(cashier.id),
        )

        assert response.status_code == 200
        assert response.json() == {
            "permissions": ["order:create", "pos:operate"],
            "is_super_user": False,
        }

    async def test_user_without_roles(self, client, make_user, auth_headers):
        user = await make_user("dave@example.com")

        response = await client.get("/api/v1/permissions/me", headers=auth_headers(user.id))

        assert response.status_code == 200
        data = response.json()
        assert data["roles"] == []
        assert data["permissions"] == []

    async def test_super_user_flag(self, client, db, tenant, make_user, auth_headers):
        user = await make_user("owner@example.com")
        admin = Role(name="Administrator", slug="admin", tenant_id=tenant.id)
        db.add(admin)
        await db.flush()
        db.add(UserRole(user_id=user.id, role_id=admin.id))
        await db.commit()

        response = await client.get(
            "/api/v1/permissions/my-permissions", headers=auth_headers(user.id)
        )

        assert response.json()["is_super_user"] is True

    async def test_requires_subject(self, client):
        response = await client.get("/api/v1/permissions/me")

        assert response.status_code == 403


@pytest.fixture
async def auditor(db, tenant, make_user):
    """A user whose only grant is role:read."""
    user = await make_user("ava@example.com")
    role = Role(name="Auditor", slug="auditor", tenant_id=tenant.id)
    read = Permission(resource="role", action="read")
    db.add_all([role, read])
    await db.flush()
    db.add_all(
        [
            UserRole(user_id=user.id, role_id=role.id),
            RolePermission(role_id=role.id, permission_id=read.id),
        ]
    )
    await db.commit()
    return user


class TestPermissionCatalogue:
    async def test_lists_all_permissions(self, client, cashier, auditor, auth_headers):
        response = await client.get("/api/v1/permissions", headers=auth_headers(auditor.id))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert [(p["resource"], p["action"]) for p in data["items"]] == [
            ("order", "create"),
            ("order", "refund"),
            ("pos", "operate"),
            ("role", "read"),
        ]

    async def test_filters_and_pages(self, client, cashier, auditor, auth_headers):
        headers = auth_headers(auditor.id)

        response = await client.get(
            "/api/v1/permissions", params={"resource": "ord"}, headers=headers
        )
        assert [p["action"] for p in response.json()["items"]] == ["create", "refund"]

        response = await client.get(
            "/api/v1/permissions", params={"page": 2, "page_size": 3}, headers=headers
        )
        data = response.json()
        assert data["total"] == 4
        assert data["page"] == 2
        assert [p["resource"] for p in data["items"]] == ["role"]

    async def test_resources_and_actions(self, client, cashier, auditor, auth_headers):
        headers = auth_headers(auditor.id)

        resources = await client.get("/api/v1/permissions/resources", headers=headers)
        actions = await client.get("/api/v1/permissions/actions", headers=headers)

        assert resources.json() == ["order", "pos", "role"]
        assert actions.json() == ["create", "operate", "read", "refund"]

    async def test_requires_role_read(self, client, cashier, auth_headers):
        for path in ("", "/resources", "/actions"):
            response = await client.get(
                f"/api/v1/permissions{path}", headers=auth_headers(cashier.id)
            )

            assert response.status_code == 403
            assert response.json()["code"] == "PERMISSION_DENIED"


class TestCheckPermission:
    async def test_granted(self, client, cashier, auth_headers):
        response = await client.post(
            "/api/v1/permissions/check",
            json={"resource": "pos", "action": "operate"},
            headers=auth_headers(cashier.id),
        )

        assert response.status_code == 200
        assert response.json() == {"has_permission": True, "roles": ["Cashier"]}

    async def test_denied(self, client, cashier, auth_headers):
        # order:refund is only held through the inactive role
        response = await client.post(
            "/api/v1/permissions/check",
            json={"resource": "order", "action": "refund"},
            headers=auth_headers(cashier.id),
        )

        assert response.status_code == 200
        assert response.json() == {"has_permission": False, "roles": []}

    async def test_super_user_holds_everything(
        self, client, db, tenant, make_user, auth_headers
    ):
        user = await make_user("owner@example.com")
        admin = Role(name="Administrator", slug="admin", tenant_id=tenant.id)
        db.add(admin)
        await db.flush()
        db.add(UserRole(user_id=user.id, role_id=admin.id))
        await db.commit()

        response = await client.post(
            "/api/v1/permissions/check",
            json={"resource": "inventory", "action": "adjust"},
            headers=auth_headers(user.id),
        )

        assert response.json() == {"has_permission": True, "roles": ["Administrator"]}

    async def test_blank_fields_rejected(self, client, cashier, auth_headers):
        response = await client.post(
            "/api/v1/permissions/check",
            json={"resource": "", "action": "operate"},
            headers=auth_headers(cashier.id),
        )

        assert response.status_code == 422

    async def test_requires_subject(self, client):
        response = await client.post(
            "/api/v1/permissions/check", json={"resource": "pos", "action": "operate"}
        )

        assert response.status_code == 403
