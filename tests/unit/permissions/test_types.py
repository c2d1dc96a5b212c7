"""Unit tests for RBAC value types."""

import pytest

from erp_access.core.permissions.types import (
    EffectivePermissionSet,
    PermissionKey,
    is_role_designated_super_user,
    to_permission_keys,
)
from tests.factories.rbac import RoleDataFactory, permission


pytestmark = pytest.mark.unit


class TestPermissionKey:
    """Tests for PermissionKey."""

    def test_parse(self):
        assert PermissionKey.parse("purchase_order:approve") == PermissionKey(
            "purchase_order", "approve"
        )

    @pytest.mark.parametrize("value", ["inventory", ":view", "inventory:", ""])
    def test_parse_rejects_incomplete(self, value: str):
        with pytest.raises(ValueError):
            PermissionKey.parse(value)

    def test_str(self):
        assert str(PermissionKey("pos", "operate")) == "pos:operate"

    def test_equals_plain_tuple(self):
        assert PermissionKey("order", "void") == ("order", "void")

    def test_to_permission_keys_accepts_tuples_and_strings(self):
        keys = to_permission_keys([("order", "read"), "order:void"])

        assert keys == [PermissionKey("order", "read"), PermissionKey("order", "void")]


class TestSuperUserDesignation:
    def test_admin_slug_is_super_user(self):
        assert is_role_designated_super_user("admin") is True

    @pytest.mark.parametrize("slug", ["manager", "Admin", "super_user", "administrator"])
    def test_other_slugs_are_not(self, slug: str):
        assert is_role_designated_super_user(slug) is False


class TestEffectivePermissionSet:
    """Tests for EffectivePermissionSet lookups."""

    def test_grants_and_roles(self):
        role = RoleDataFactory.build(slug="cashier")
        perms = EffectivePermissionSet(
            user_id="u-1",
            roles=(role,),
            permissions=(permission("pos:operate"), permission("order:create")),
        )

        assert perms.grants("pos", "operate") is True
        assert perms.grants("order", "void") is False
        assert perms.has_role("cashier") is True
        assert perms.has_role("manager") is False
        assert perms.role_slugs == frozenset({"cashier"})
        assert PermissionKey("order", "create") in perms.permission_keys

    def test_lookups_survive_json_round_trip(self):
        perms = EffectivePermissionSet(
            user_id="u-1",
            roles=(RoleDataFactory.build(slug="staff"),),
            permissions=(permission("inventory:view"),),
        )

        restored = EffectivePermissionSet.model_validate_json(perms.model_dump_json())

        assert restored.grants("inventory", "view") is True
        assert restored.has_role("staff") is True

    def test_empty_set_grants_nothing(self):
        perms = EffectivePermissionSet(user_id="u-1")

        assert perms.permission_keys == frozenset()
        assert perms.is_super_user is False
