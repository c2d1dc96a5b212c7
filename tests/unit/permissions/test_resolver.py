"""Unit tests for PermissionResolver.

These tests verify resolver behavior against an in-memory store:
- Effective permissions are the union over active roles
- Super-user bypass applies to permission checks only
- Caching, invalidation and single-flight loading
- Failures are surfaced and never cached
"""

import asyncio
from uuid import uuid4

import pytest

from erp_access.core.errors import InvalidSubjectError, StoreUnavailableError
from erp_access.core.permissions.cache import InMemoryPermissionCache
from erp_access.core.permissions.resolver import PermissionResolver
from tests.factories.rbac import FakePermissionStore, store_outage


pytestmark = pytest.mark.unit


@pytest.fixture
def subject() -> str:
    return str(uuid4())


class TestResolve:
    """Tests for resolve()."""

    async def test_union_of_active_roles(self, fake_store, fake_resolver, subject):
        manager = fake_store.add_role("manager", ["purchase_order:approve", "inventory:view"])
        staff = fake_store.add_role("staff", ["inventory:view", "order:read"])
        fake_store.assign(subject, manager, staff)

        perms = await fake_resolver.resolve(subject)

        assert {str(k) for k in perms.permission_keys} == {
            "purchase_order:approve",
            "inventory:view",
            "order:read",
        }
        assert len(perms.permissions) == 3
        assert perms.role_slugs == {"manager", "staff"}
        assert perms.is_super_user is False

    async def test_inactive_role_contributes_nothing(self, fake_store, fake_resolver, subject):
        active = fake_store.add_role("cashier", ["pos:operate"])
        inactive = fake_store.add_role("manager", ["order:void"], is_active=False)
        fake_store.assign(subject, active, inactive)

        perms = await fake_resolver.resolve(subject)

        assert perms.role_slugs == {"cashier"}
        assert perms.grants("order", "void") is False

    async def test_no_roles_skips_permission_query(self, fake_store, fake_resolver, subject):
        perms = await fake_resolver.resolve(subject)

        assert perms.roles == ()
        assert perms.permissions == ()
        assert perms.is_super_user is False
        assert fake_store.permission_queries == 0

    async def test_normalizes_uuid_and_whitespace(self, fake_store, fake_resolver):
        user_id = uuid4()
        fake_store.assign(str(user_id), fake_store.add_role("staff", ["order:read"]))

        by_uuid = await fake_resolver.resolve(user_id)
        by_padded = await fake_resolver.resolve(f"  {user_id} ")

        assert by_uuid.user_id == str(user_id)
        assert by_padded is by_uuid
        assert fake_store.role_queries == 1

    @pytest.mark.parametrize("user_id", ["", "   ", None])
    async def test_rejects_missing_subject(self, fake_resolver, user_id):
        with pytest.raises(InvalidSubjectError):
            await fake_resolver.resolve(user_id)

    async def test_store_failure_propagates_and_is_not_cached(
        self, fake_store, fake_resolver, subject
    ):
        fake_store.assign(subject, fake_store.add_role("staff", ["order:read"]))
        fake_store.fail_with = store_outage()

        with pytest.raises(StoreUnavailableError):
            await fake_resolver.resolve(subject)

        fake_store.fail_with = None
        perms = await fake_resolver.resolve(subject)

        assert perms.grants("order", "read") is True
        assert fake_store.role_queries == 2

    def test_rejects_unknown_super_user_scope(self, fake_store):
        with pytest.raises(ValueError):
            PermissionResolver(fake_store, InMemoryPermissionCache(), super_user_scope="tenant")


class TestSuperUser:
    """Tests for the super-user bypass."""

    async def test_admin_role_bypasses_permission_checks(
        self, fake_store, fake_resolver, subject
    ):
        fake_store.assign(subject, fake_store.add_role("admin", []))

        assert await fake_resolver.is_super_user(subject) is True
        assert await fake_resolver.has_permission(subject, "anything", "at_all") is True
        assert await fake_resolver.has_any_permission(subject, []) is True
        assert await fake_resolver.has_all_permissions(subject, [("x", "y"), ("z", "w")]) is True
        assert await fake_resolver.check_access(subject, "tenant", "manage") is True

    async def test_admin_gets_no_role_bypass(self, fake_store, fake_resolver, subject):
        fake_store.assign(subject, fake_store.add_role("admin", []))

        assert await fake_resolver.has_role(subject, "admin") is True
        assert await fake_resolver.has_role(subject, "manager") is False
        assert await fake_resolver.has_any_role(subject, ["manager", "cashier"]) is False
        assert await fake_resolver.has_all_roles(subject, ["admin", "manager"]) is False

    async def test_inactive_admin_role_is_not_super_user(
        self, fake_store, fake_resolver, subject
    ):
        fake_store.assign(subject, fake_store.add_role("admin", [], is_active=False))

        assert await fake_resolver.is_super_user(subject) is False
        assert await fake_resolver.has_permission(subject, "location", "manage") is False

    async def test_global_scope_ignores_tenant_admin_roles(self, fake_store, subject):
        resolver = PermissionResolver(
            fake_store, InMemoryPermissionCache(), super_user_scope="global"
        )
        fake_store.assign(subject, fake_store.add_role("admin", [], tenant_id=uuid4()))

        assert await resolver.is_super_user(subject) is False

    async def test_global_scope_honors_system_admin_role(self, fake_store, subject):
        resolver = PermissionResolver(
            fake_store, InMemoryPermissionCache(), super_user_scope="global"
        )
        fake_store.assign(subject, fake_store.add_role("admin", [], tenant_id=None))

        assert await resolver.is_super_user(subject) is True

    async def test_tenant_admin_is_not_global_super_user(
        self, fake_store, fake_resolver, subject
    ):
        fake_store.assign(subject, fake_store.add_role("admin", [], tenant_id=uuid4()))

        assert await fake_resolver.is_super_user(subject) is True
        assert await fake_resolver.is_global_super_user(subject) is False

    async def test_system_admin_is_global_super_user(self, fake_store, fake_resolver, subject):
        fake_store.assign(subject, fake_store.add_role("admin", [], tenant_id=None))

        assert await fake_resolver.is_global_super_user(subject) is True

    async def test_inactive_system_admin_is_not_global_super_user(
        self, fake_store, fake_resolver, subject
    ):
        fake_store.assign(
            subject, fake_store.add_role("admin", [], tenant_id=None, is_active=False)
        )

        assert await fake_resolver.is_global_super_user(subject) is False


class TestPredicates:
    """Tests for permission and role predicates of non-super users."""

    @pytest.fixture
    def cashier(self, fake_store, subject) -> str:
        fake_store.assign(
            subject,
            fake_store.add_role("cashier", ["pos:operate", "order:create", "order:read"]),
        )
        return subject

    async def test_has_permission(self, fake_resolver, cashier):
        assert await fake_resolver.has_permission(cashier, "pos", "operate") is True
        assert await fake_resolver.has_permission(cashier, "order", "void") is False

    async def test_has_any_permission(self, fake_resolver, cashier):
        assert await fake_resolver.has_any_permission(
            cashier, [("order", "void"), ("order", "read")]
        ) is True
        assert await fake_resolver.has_any_permission(
            cashier, [("order", "void"), ("order", "refund")]
        ) is False

    async def test_has_any_permission_empty_is_false(self, fake_resolver, cashier):
        assert await fake_resolver.has_any_permission(cashier, []) is False

    async def test_has_all_permissions(self, fake_resolver, cashier):
        assert await fake_resolver.has_all_permissions(
            cashier, ["order:create", "order:read"]
        ) is True
        assert await fake_resolver.has_all_permissions(
            cashier, ["order:create", "order:void"]
        ) is False

    async def test_has_all_permissions_empty_is_true(self, fake_resolver, cashier):
        assert await fake_resolver.has_all_permissions(cashier, []) is True

    async def test_check_access_matches_has_permission(self, fake_resolver, cashier):
        for resource, action in [("pos", "operate"), ("report", "export")]:
            assert await fake_resolver.check_access(
                cashier, resource, action
            ) == await fake_resolver.has_permission(cashier, resource, action)

    async def test_role_predicates(self, fake_store, fake_resolver, subject):
        fake_store.assign(
            subject,
            fake_store.add_role("manager", []),
            fake_store.add_role("staff", []),
        )

        assert await fake_resolver.has_any_role(subject, ["cashier", "staff"]) is True
        assert await fake_resolver.has_all_roles(subject, ["manager", "staff"]) is True
        assert await fake_resolver.has_all_roles(subject, ["manager", "cashier"]) is False
        assert await fake_resolver.has_any_role(subject, []) is False
        assert await fake_resolver.has_all_roles(subject, []) is True


class TestCaching:
    """Tests for cache reuse and invalidation."""

    async def test_second_resolve_hits_cache(self, fake_store, fake_resolver, subject):
        fake_store.assign(subject, fake_store.add_role("staff", ["order:read"]))

        first = await fake_resolver.resolve(subject)
        second = await fake_resolver.resolve(subject)

        assert second is first
        assert fake_store.role_queries == 1
        assert fake_store.permission_queries == 1

    async def test_stale_until_invalidated(self, fake_store, fake_resolver, subject):
        role = fake_store.add_role("staff", ["order:read"])
        fake_store.assign(subject, role)
        assert await fake_resolver.has_permission(subject, "order", "void") is False

        fake_store.grant(role, "order:void")
        assert await fake_resolver.has_permission(subject, "order", "void") is False

        await fake_resolver.invalidate(subject)
        assert await fake_resolver.has_permission(subject, "order", "void") is True

    async def test_invalidate_only_affects_one_subject(self, fake_store, fake_resolver):
        alice, bob = str(uuid4()), str(uuid4())
        role = fake_store.add_role("staff", ["order:read"])
        fake_store.assign(alice, role)
        fake_store.assign(bob, role)
        await fake_resolver.resolve(alice)
        await fake_resolver.resolve(bob)

        await fake_resolver.invalidate(alice)
        await fake_resolver.resolve(alice)
        await fake_resolver.resolve(bob)

        assert fake_store.role_queries == 3

    async def test_role_deactivation_after_invalidate_all(self, fake_store, fake_resolver):
        alice, bob = str(uuid4()), str(uuid4())
        role = fake_store.add_role("manager", ["purchase_order:approve"])
        fake_store.assign(alice, role)
        fake_store.assign(bob, role)
        assert await fake_resolver.has_permission(alice, "purchase_order", "approve") is True
        assert await fake_resolver.has_permission(bob, "purchase_order", "approve") is True

        fake_store.set_active(role, False)
        await fake_resolver.invalidate_all()

        assert await fake_resolver.has_permission(alice, "purchase_order", "approve") is False
        assert await fake_resolver.has_permission(bob, "purchase_order", "approve") is False

    async def test_unassign_after_invalidate(self, fake_store, fake_resolver, subject):
        role = fake_store.add_role("cashier", ["pos:operate"])
        fake_store.assign(subject, role)
        assert await fake_resolver.has_role(subject, "cashier") is True

        fake_store.unassign(subject, role)
        await fake_resolver.invalidate(subject)

        assert await fake_resolver.has_role(subject, "cashier") is False


class SlowStore(FakePermissionStore):
    """Store whose role query blocks until released."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def find_active_roles_for_user(self, user_id):
        self.role_queries += 1
        await self.release.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return [self.roles[r] for r in self.user_roles.get(user_id, set())]


class TestSingleFlight:
    """Tests for concurrent resolution of the same subject."""

    async def test_concurrent_misses_share_one_load(self, subject):
        store = SlowStore()
        store.assign(subject, store.add_role("staff", ["order:read"]))
        resolver = PermissionResolver(store, InMemoryPermissionCache())

        tasks = [asyncio.create_task(resolver.resolve(subject)) for _ in range(5)]
        await asyncio.sleep(0)
        store.release.set()
        results = await asyncio.gather(*tasks)

        assert store.role_queries == 1
        assert all(r is results[0] for r in results)

    async def test_concurrent_failure_reaches_every_caller(self, subject):
        store = SlowStore()
        store.fail_with = store_outage()
        resolver = PermissionResolver(store, InMemoryPermissionCache())

        tasks = [asyncio.create_task(resolver.resolve(subject)) for _ in range(3)]
        await asyncio.sleep(0)
        store.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert all(isinstance(r, StoreUnavailableError) for r in results)
        assert store.role_queries == 1

    async def test_load_finishing_after_invalidate_is_not_cached(self, subject):
        store = SlowStore()
        role = store.add_role("staff", ["order:read"])
        store.assign(subject, role)
        cache = InMemoryPermissionCache()
        resolver = PermissionResolver(store, cache)

        pending = asyncio.create_task(resolver.resolve(subject))
        await asyncio.sleep(0)
        await resolver.invalidate(subject)
        store.release.set()
        stale = await pending

        assert stale.grants("order", "read") is True
        assert await cache.get(subject) is None

    async def test_cancelled_caller_does_not_cancel_shared_load(self, subject):
        store = SlowStore()
        store.assign(subject, store.add_role("staff", ["order:read"]))
        resolver = PermissionResolver(store, InMemoryPermissionCache())

        first = asyncio.create_task(resolver.resolve(subject))
        second = asyncio.create_task(resolver.resolve(subject))
        await asyncio.sleep(0)
        first.cancel()
        store.release.set()

        perms = await second

        assert perms.grants("order", "read") is True
        with pytest.raises(asyncio.CancelledError):
            await first
