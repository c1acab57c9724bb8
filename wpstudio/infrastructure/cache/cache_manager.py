# File: wpstudio/infrastructure/cache/cache_manager.py
# Purpose: Cache manager for external API responses with Redis and an in-memory fallback
import json
import hashlib
import time
import fnmatch
from typing import Any, Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
import structlog

logger = structlog.get_logger(__name__)


class CacheManager:
    """
    Key-value cache shared by the SDKs.

    Backed by Redis when a client is given, otherwise by a process-local
    dict. Backend errors are logged and reported as a miss so a cache outage
    never fails an API call.
    """

    def __init__(self, redis_client: Optional[Redis], default_ttl: int = 3600):
        """
        Initialize cache manager.

        Args:
            redis_client: Async Redis client instance, None for in-memory mode
            default_ttl: Default TTL in seconds (default 1 hour)
        """
        self.redis = redis_client
        self.default_ttl = default_ttl
        self._memory_store: dict[str, tuple[str, Optional[float]]] = {}
        self._memory_enabled = redis_client is None
        if self._memory_enabled:
            logger.warning("cache_fallback_in_memory_enabled")

    @staticmethod
    def hash_key(data: Any) -> str:
        """
        Stable MD5 digest of any JSON-serializable value.

        Dict ordering does not change the digest.
        """
        key_data = json.dumps(data, sort_keys=True, ensure_ascii=False, default=str)
        return hashlib.md5(key_data.encode()).hexdigest()

    def _now(self) -> float:
        return time.time()

    def _get_memory(self, key: str) -> Optional[str]:
        item = self._memory_store.get(key)
        if not item:
            return None
        value, expire_at = item
        if expire_at is not None and expire_at <= self._now():
            self._memory_store.pop(key, None)
            return None
        return value

    def _set_memory(self, key: str, value: str, ttl: Optional[int]) -> bool:
        expire_at = self._now() + ttl if ttl else None
        self._memory_store[key] = (value, expire_at)
        return True

    def _delete_memory(self, key: str) -> bool:
        return self._memory_store.pop(key, None) is not None

    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if self._memory_enabled:
            value = self._get_memory(key)
        else:
            try:
                value = await self.redis.get(key)
            except RedisError as e:
                logger.error("cache_get_error", key=key, error=str(e))
                return None

        if value is None:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (uses default if None)

        Returns:
            True if set successfully, False otherwise
        """
        ttl = ttl or self.default_ttl
        try:
            if self._memory_enabled:
                result = self._set_memory(key, value, ttl)
            else:
                result = await self.redis.setex(key, ttl, value)
        except RedisError as e:
            logger.error("cache_set_error", key=key, error=str(e))
            return False
        if result:
            logger.debug("cache_set", key=key, ttl=ttl)
        return bool(result)

    async def get_json(self, key: str) -> Optional[Any]:
        """
        Get and decode a JSON value.

        Corrupted entries are dropped and reported as a miss.
        """
        cached = await self.get(key)
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            logger.error("cache_decode_error", key=key)
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(value, ensure_ascii=False), ttl=ttl)

    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Args:
            key: Cache key

        Returns:
            True if deleted, False otherwise
        """
        try:
            if self._memory_enabled:
                deleted = self._delete_memory(key)
            else:
                deleted = await self.redis.delete(key) > 0
        except RedisError as e:
            logger.error("cache_delete_error", key=key, error=str(e))
            return False
        if deleted:
            logger.debug("cache_delete", key=key)
        return deleted

    async def increment(self, key: str, amount: int = 1) -> Optional[int]:
        """
        Atomically increment a counter. Counters never expire.

        Args:
            key: Cache key
            amount: Amount to increment by

        Returns:
            New value after increment, or None on error
        """
        if self._memory_enabled:
            # Runs within one event-loop step, so no await may sit in between
            current = self._get_memory(key)
            try:
                new_value = amount if current is None else int(current) + amount
            except (TypeError, ValueError):
                logger.error("cache_increment_error", key=key, error="value is not an integer")
                return None
            self._set_memory(key, str(new_value), None)
            return new_value
        try:
            return await self.redis.incrby(key, amount)
        except RedisError as e:
            logger.error("cache_increment_error", key=key, error=str(e))
            return None

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern.

        Args:
            pattern: Redis key pattern (e.g., 'wp.category.12.*')

        Returns:
            Number of keys deleted
        """
        try:
            if self._memory_enabled:
                keys = [key for key in list(self._memory_store) if fnmatch.fnmatchcase(key, pattern)]
                deleted = sum(1 for key in keys if self._delete_memory(key))
            else:
                keys = [key async for key in self.redis.scan_iter(match=pattern)]
                deleted = await self.redis.delete(*keys) if keys else 0
        except RedisError as e:
            logger.error("cache_delete_pattern_error", pattern=pattern, error=str(e))
            return 0
        if deleted:
            logger.info("cache_pattern_deleted", pattern=pattern, count=deleted)
        return deleted

    async def health_check(self) -> dict:
        """
        Check cache health.

        Returns:
            Dictionary with health status
        """
        if self._memory_enabled:
            return {
                "status": "degraded",
                "connected": False,
                "note": "in_memory_fallback"
            }
        try:
            await self.redis.ping()
            info = await self.redis.info()
            return {
                "status": "healthy",
                "connected": True,
                "used_memory": info.get("used_memory_human"),
                "connected_clients": info.get("connected_clients"),
            }
        except RedisError as e:
            logger.error("cache_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "connected": False,
                "error": str(e)
            }
