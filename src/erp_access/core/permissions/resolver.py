"""Permission resolver.

Computes a subject's effective permission set from the store, caches
it, and answers permission and role questions against it.

Resolution order for a cache miss:

1. Load the subject's active roles.
2. Derive the super-user flag from the role slugs.
3. Load the permissions granted to those roles (skipped when the
   subject has no roles).

Concurrent misses for the same subject share one load.
"""

import asyncio
from collections.abc import Iterable
from uuid import UUID

import structlog

from erp_access.core.constants import SUPER_USER_SCOPE_ANY, SUPER_USER_SCOPE_GLOBAL
from erp_access.core.errors import InvalidSubjectError
from erp_access.core.permissions.cache import PermissionCache
from erp_access.core.permissions.store import PermissionStore
from erp_access.core.permissions.types import (
    EffectivePermissionSet,
    PermissionCheck,
    RoleData,
    is_role_designated_super_user,
    to_permission_keys,
)


logger = structlog.get_logger()


def normalize_subject_id(user_id: str | UUID | None) -> str:
    """Return the canonical cache key for a subject.

    Raises:
        InvalidSubjectError: If the id is missing or blank
    """
    if user_id is None:
        raise InvalidSubjectError("Subject identifier is required")
    subject = str(user_id).strip()
    if not subject:
        raise InvalidSubjectError("Subject identifier is required")
    return subject


class PermissionResolver:
    """Resolves and caches effective permission sets.

    Args:
        store: Source of roles and permissions
        cache: Cache for computed sets; ``invalidate`` and
            ``invalidate_all`` are the only ways to evict entries early
        super_user_scope: ``"any"`` lets every role slugged ``admin``
            bypass checks; ``"global"`` restricts that to system roles
    """

    def __init__(
        self,
        store: PermissionStore,
        cache: PermissionCache,
        super_user_scope: str = SUPER_USER_SCOPE_ANY,
    ) -> None:
        if super_user_scope not in (SUPER_USER_SCOPE_ANY, SUPER_USER_SCOPE_GLOBAL):
            raise ValueError(f"Unknown super user scope: {super_user_scope!r}")
        self.store = store
        self.cache = cache
        self.super_user_scope = super_user_scope
        self._inflight: dict[str, asyncio.Task[EffectivePermissionSet]] = {}

    # ============================================================
    # Resolution and invalidation
    # ============================================================

    async def resolve(self, user_id: str | UUID) -> EffectivePermissionSet:
        """Get the effective permission set for a subject.

        Served from the cache when present; otherwise loaded from the
        store and cached.

        Raises:
            InvalidSubjectError: If the subject id is missing or malformed
            StoreUnavailableError: If the store cannot be queried
        """
        subject = normalize_subject_id(user_id)

        cached = await self.cache.get(subject)
        if cached is not None:
            logger.debug("permission_cache_hit", user_id=subject)
            return cached

        task = self._inflight.get(subject)
        if task is None:
            task = asyncio.create_task(self._load_and_cache(subject))
            self._inflight[subject] = task
            task.add_done_callback(lambda t, key=subject: self._forget(key, t))

        # A cancelled caller must not cancel the load other callers wait on.
        return await asyncio.shield(task)

    async def invalidate(self, user_id: str | UUID) -> None:
        """Evict one subject's cached set.

        Call after any change to that subject's role assignments.
        """
        subject = normalize_subject_id(user_id)
        self._inflight.pop(subject, None)
        await self.cache.invalidate(subject)
        logger.info("permission_cache_invalidated", user_id=subject)

    async def invalidate_all(self) -> None:
        """Evict every cached set.

        Call after any change to a role's permission grants or active
        flag; any number of subjects may hold that role.
        """
        self._inflight.clear()
        await self.cache.invalidate_all()
        logger.info("permission_cache_cleared")

    def _forget(self, subject: str, task: "asyncio.Task[EffectivePermissionSet]") -> None:
        if self._inflight.get(subject) is task:
            del self._inflight[subject]

    async def _load_and_cache(self, subject: str) -> EffectivePermissionSet:
        result = await self._load(subject)

        # Skip the write if an invalidation happened while loading.
        if self._inflight.get(subject) is asyncio.current_task():
            await self.cache.set(subject, result)
        return result

    async def _load(self, subject: str) -> EffectivePermissionSet:
        roles = await self.store.find_active_roles_for_user(subject)
        is_super_user = any(self._confers_super_user(role) for role in roles)

        permissions = []
        if roles:
            permissions = await self.store.find_permissions_for_roles(
                {role.id for role in roles}
            )

        result = EffectivePermissionSet(
            user_id=subject,
            roles=tuple(roles),
            permissions=tuple(permissions),
            is_super_user=is_super_user,
        )
        logger.debug(
            "permissions_resolved",
            user_id=subject,
            role_count=len(result.roles),
            permission_count=len(result.permissions),
            is_super_user=is_super_user,
        )
        return result

    def _confers_super_user(self, role: RoleData) -> bool:
        if not is_role_designated_super_user(role.slug):
            return False
        if self.super_user_scope == SUPER_USER_SCOPE_GLOBAL:
            return role.tenant_id is None
        return True

    # ============================================================
    # Permission predicates (super users bypass)
    # ============================================================

    async def has_permission(self, user_id: str | UUID, resource: str, action: str) -> bool:
        """Check if a subject may perform ``action`` on ``resource``."""
        perms = await self.resolve(user_id)
        if perms.is_super_user:
            logger.debug(
                "super_user_bypass",
                user_id=perms.user_id,
                permissions=[f"{resource}:{action}"],
            )
            return True
        return perms.grants(resource, action)

    async def has_any_permission(
        self, user_id: str | UUID, checks: Iterable[PermissionCheck | str]
    ) -> bool:
        """Check if a subject holds at least one of the permissions.

        An empty list of checks is False for non-super users.
        """
        keys = to_permission_keys(checks)
        perms = await self.resolve(user_id)
        if perms.is_super_user:
            logger.debug(
                "super_user_bypass",
                user_id=perms.user_id,
                permissions=[str(k) for k in keys],
            )
            return True
        return any(key in perms.permission_keys for key in keys)

    async def has_all_permissions(
        self, user_id: str | UUID, checks: Iterable[PermissionCheck | str]
    ) -> bool:
        """Check if a subject holds every one of the permissions.

        An empty list of checks is True.
        """
        keys = to_permission_keys(checks)
        perms = await self.resolve(user_id)
        if perms.is_super_user:
            logger.debug(
                "super_user_bypass",
                user_id=perms.user_id,
                permissions=[str(k) for k in keys],
            )
            return True
        return all(key in perms.permission_keys for key in keys)

    async def check_access(self, subject: str | UUID, resource: str, action: str) -> bool:
        """Entry point for other modules; same as ``has_permission``."""
        return await self.has_permission(subject, resource, action)

    # ============================================================
    # Role predicates (no bypass)
    # ============================================================

    async def has_role(self, user_id: str | UUID, slug: str) -> bool:
        perms = await self.resolve(user_id)
        return perms.has_role(slug)

    async def has_any_role(self, user_id: str | UUID, slugs: Iterable[str]) -> bool:
        perms = await self.resolve(user_id)
        return any(perms.has_role(slug) for slug in slugs)

    async def has_all_roles(self, user_id: str | UUID, slugs: Iterable[str]) -> bool:
        perms = await self.resolve(user_id)
        return all(perms.has_role(slug) for slug in slugs)

    async def is_super_user(self, user_id: str | UUID) -> bool:
        perms = await self.resolve(user_id)
        return perms.is_super_user

    async def is_global_super_user(self, user_id: str | UUID) -> bool:
        """Check for an active super-user role that belongs to no tenant.

        Ignores ``super_user_scope``: a tenant's own ``admin`` role never
        counts here. Gates changes to system roles.
        """
        perms = await self.resolve(user_id)
        return any(
            is_role_designated_super_user(role.slug) and role.tenant_id is None
            for role in perms.roles
        )
