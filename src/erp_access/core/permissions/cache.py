"""Caches for effective permission sets.

The resolver owns exactly one cache instance, built at application
startup and injected. Two backends are available:

- ``InMemoryPermissionCache``: process-local, bounded, per-entry TTL.
- ``RedisPermissionCache``: shared between instances, TTL enforced by
  Redis, so an invalidation on one instance is seen by all of them.
"""

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Protocol

import structlog
from pydantic import ValidationError as PydanticValidationError

from erp_access.core.cache.redis import RedisCache
from erp_access.core.constants import (
    DEFAULT_PERMISSION_CACHE_MAX_ENTRIES,
    DEFAULT_PERMISSION_CACHE_TTL_SECONDS,
    PERMISSION_CACHE_KEY_PREFIX,
)
from erp_access.core.permissions.types import EffectivePermissionSet


logger = structlog.get_logger()


class PermissionCache(Protocol):
    """Storage for effective permission sets keyed by subject id."""

    async def get(self, user_id: str) -> EffectivePermissionSet | None: ...

    async def set(self, user_id: str, value: EffectivePermissionSet) -> None: ...

    async def invalidate(self, user_id: str) -> None: ...

    async def invalidate_all(self) -> None: ...


class InMemoryPermissionCache:
    """Process-local permission cache.

    Entries expire ``ttl_seconds`` after being stored (0 disables expiry).
    When ``max_entries`` is reached the least recently stored entry is
    dropped. All operations run on the event loop thread without awaiting,
    so each one is atomic.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_PERMISSION_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_PERMISSION_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float | None, EffectivePermissionSet]] = (
            OrderedDict()
        )

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, user_id: str) -> EffectivePermissionSet | None:
        entry = self._entries.get(user_id)
        if entry is None:
            return None

        expires_at, value = entry
        if expires_at is not None and self._clock() >= expires_at:
            self._entries.pop(user_id, None)
            return None
        return value

    async def set(self, user_id: str, value: EffectivePermissionSet) -> None:
        expires_at = self._clock() + self.ttl_seconds if self.ttl_seconds else None

        self._entries.pop(user_id, None)
        self._entries[user_id] = (expires_at, value)

        if self.max_entries:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    async def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)

    async def invalidate_all(self) -> None:
        self._entries.clear()


class RedisPermissionCache:
    """Permission cache stored in Redis.

    Keys are ``rbac:perms:<user_id>`` holding the JSON form of the
    effective set. Entries that fail to decode are treated as misses.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_PERMISSION_CACHE_TTL_SECONDS,
        prefix: str = PERMISSION_CACHE_KEY_PREFIX,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._cache = RedisCache(prefix=prefix)

    async def get(self, user_id: str) -> EffectivePermissionSet | None:
        raw = await self._cache.get(user_id)
        if raw is None:
            return None

        try:
            return EffectivePermissionSet.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("permission_cache_entry_corrupt", user_id=user_id)
            await self._cache.delete(user_id)
            return None

    async def set(self, user_id: str, value: EffectivePermissionSet) -> None:
        await self._cache.set(
            user_id,
            value.model_dump_json(),
            self.ttl_seconds or None,
        )

    async def invalidate(self, user_id: str) -> None:
        await self._cache.delete(user_id)

    async def invalidate_all(self) -> None:
        deleted = await self._cache.delete_all()
        logger.debug("permission_cache_keys_deleted", count=deleted)
