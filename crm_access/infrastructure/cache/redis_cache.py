"""Redis cache for reporting-hierarchy lookups.

Values are JSON, keys are namespaced under KEY_PREFIX so the service can
share a Redis database. The cache is optional: while Redis is disabled or
unreachable every call degrades to a miss and the hierarchy resolver falls
through to the credential store. After a connection failure the next
attempt to reconnect waits RECONNECT_COOLDOWN_SECONDS, so a dead Redis
costs one failed connect per cooldown instead of one per request.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from crm_access.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "crm_access:"
RECONNECT_COOLDOWN_SECONDS = 30.0
UNLINK_BATCH = 500


class CacheService:
    """Async Redis cache; connect() at startup, disconnect() at shutdown."""

    def __init__(self, settings: Settings, redis_client: redis.Redis | None = None) -> None:
        self.settings = settings
        self.redis = redis_client
        self._reconnect_at: float | None = None

    def _new_client(self) -> redis.Redis:
        password = self.settings.redis_password
        return redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=password.get_secret_value() if password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )

    async def connect(self) -> None:
        """Connect and ping. On failure the cache stays unavailable until the cooldown ends."""
        if self.redis is not None:
            return
        client = self._new_client()
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            await client.aclose()
            self._reconnect_at = time.monotonic() + RECONNECT_COOLDOWN_SECONDS
            logger.warning("Redis unreachable (%s); hierarchy cache disabled for now", e)
            return
        self.redis = client
        self._reconnect_at = None
        logger.info(
            "Redis cache connected: %s:%s/%s",
            self.settings.redis_host,
            self.settings.redis_port,
            self.settings.redis_db,
        )

    async def disconnect(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis cache disconnected")
        self._reconnect_at = None

    def is_available(self) -> bool:
        return self.redis is not None

    async def _drop_client(self) -> None:
        client, self.redis = self.redis, None
        self._reconnect_at = time.monotonic() + RECONNECT_COOLDOWN_SECONDS
        if client is not None:
            try:
                await client.aclose()
            except redis.RedisError as e:
                logger.debug("Ignoring error closing stale Redis client: %s", e)

    async def _run(
        self, op: str, key: str, fn: Callable[[redis.Redis], Awaitable[T]], default: T
    ) -> T:
        if self.redis is None and self._reconnect_at is not None:
            if time.monotonic() >= self._reconnect_at:
                await self.connect()
        if self.redis is None:
            return default
        try:
            return await fn(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Cache %s for %s lost Redis: %s", op, key, e)
            await self._drop_client()
        except redis.RedisError:
            logger.exception("Cache %s error for %s", op, key)
        return default

    async def get(self, key: str) -> Any | None:
        """JSON-decoded value, or None on a miss or when Redis is unavailable."""

        async def _get(client: redis.Redis) -> Any | None:
            raw = await client.get(KEY_PREFIX + key)
            logger.debug("Cache %s: %s", "MISS" if raw is None else "HIT", key)
            return None if raw is None else json.loads(raw)

        return await self._run("get", key, _get, None)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        payload = json.dumps(value)

        async def _set(client: redis.Redis) -> bool:
            await client.setex(KEY_PREFIX + key, ttl, payload)
            return True

        return await self._run("set", key, _set, False)

    async def delete(self, key: str) -> bool:
        async def _delete(client: redis.Redis) -> bool:
            await client.delete(KEY_PREFIX + key)
            return True

        return await self._run("delete", key, _delete, False)

    async def delete_pattern(self, pattern: str) -> int:
        """UNLINK every key matching pattern (SCAN based, batched). Returns the count."""

        async def _delete_pattern(client: redis.Redis) -> int:
            deleted = 0
            batch: list[str] = []
            async for name in client.scan_iter(match=KEY_PREFIX + pattern):
                batch.append(name)
                if len(batch) == UNLINK_BATCH:
                    deleted += await client.unlink(*batch)
                    batch.clear()
            if batch:
                deleted += await client.unlink(*batch)
            if deleted:
                logger.info("Cache INVALIDATE: %s (%d keys)", pattern, deleted)
            return deleted

        return await self._run("delete_pattern", pattern, _delete_pattern, 0)
