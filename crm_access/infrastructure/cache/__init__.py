"""Cache: Redis service (optional; every call degrades to a miss when Redis is down)."""

from crm_access.infrastructure.cache.redis_cache import CacheService

__all__ = ["CacheService"]
