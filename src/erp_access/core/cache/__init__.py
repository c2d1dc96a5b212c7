"""Cache module for Redis-backed caching."""

from erp_access.core.cache.redis import RedisCache, close_redis_pool, redis_client


__all__ = [
    "RedisCache",
    "close_redis_pool",
    "redis_client",
]
