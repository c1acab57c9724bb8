# File: tests/test_cache_manager.py
# Purpose: In-memory cache backend: TTL expiry, JSON helpers, counters and pattern deletes
import pytest

from wpstudio.infrastructure.cache.cache_manager import CacheManager


class Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock(memory_cache, monkeypatch):
    fake = Clock()
    monkeypatch.setattr(memory_cache, "_now", fake)
    return fake


class TestCacheManagerMemory:
    """Process-local fallback used when Redis is unavailable"""

    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_cache):
        assert await memory_cache.get("wp.posts.v0.abc") is None
        assert await memory_cache.set("wp.posts.v0.abc", "value") is True
        assert await memory_cache.get("wp.posts.v0.abc") == "value"

    @pytest.mark.asyncio
    async def test_entries_expire_after_ttl(self, memory_cache, clock):
        await memory_cache.set("wp.post.1.abc", "value", ttl=10)

        clock.now += 9
        assert await memory_cache.get("wp.post.1.abc") == "value"

        clock.now += 1
        assert await memory_cache.get("wp.post.1.abc") is None

    @pytest.mark.asyncio
    async def test_default_ttl_applies(self, memory_cache, clock):
        await memory_cache.set("key", "value")
        clock.now += memory_cache.default_ttl
        assert await memory_cache.get("key") is None

    @pytest.mark.asyncio
    async def test_json_round_trip(self, memory_cache):
        await memory_cache.set_json("wp.categories.v0.abc", [{"id": 1, "name": "Nachrichten"}])
        assert await memory_cache.get_json("wp.categories.v0.abc") == [{"id": 1, "name": "Nachrichten"}]

    @pytest.mark.asyncio
    async def test_corrupt_json_is_dropped(self, memory_cache):
        await memory_cache.set("wp.tags.v0.abc", "{not json")

        assert await memory_cache.get_json("wp.tags.v0.abc") is None
        assert await memory_cache.get("wp.tags.v0.abc") is None

    @pytest.mark.asyncio
    async def test_increment_counters_never_expire(self, memory_cache, clock):
        assert await memory_cache.increment("wp.posts.version") == 1
        assert await memory_cache.increment("wp.posts.version", 2) == 3

        clock.now += 10 * 365 * 24 * 3600
        assert await memory_cache.get("wp.posts.version") == "3"

    @pytest.mark.asyncio
    async def test_increment_non_integer_fails_softly(self, memory_cache):
        await memory_cache.set("counter", "abc")
        assert await memory_cache.increment("counter") is None

    @pytest.mark.asyncio
    async def test_delete(self, memory_cache):
        await memory_cache.set("key", "value")
        assert await memory_cache.delete("key") is True
        assert await memory_cache.delete("key") is False

    @pytest.mark.asyncio
    async def test_delete_pattern(self, memory_cache):
        await memory_cache.set("wp.category.12.a", "1")
        await memory_cache.set("wp.category.12.b", "2")
        await memory_cache.set("wp.category.120.a", "3")
        await memory_cache.set("wp.tag.12.a", "4")

        assert await memory_cache.delete_pattern("wp.category.12.*") == 2
        assert await memory_cache.get("wp.category.120.a") == "3"
        assert await memory_cache.get("wp.tag.12.a") == "4"

    @pytest.mark.asyncio
    async def test_health_check_reports_fallback(self, memory_cache):
        health = await memory_cache.health_check()
        assert health["status"] == "degraded"
        assert health["note"] == "in_memory_fallback"


class TestHashKey:
    def test_order_independent(self):
        assert CacheManager.hash_key({"a": 1, "b": 2}) == CacheManager.hash_key({"b": 2, "a": 1})

    def test_different_queries_differ(self):
        assert CacheManager.hash_key({"page": 1}) != CacheManager.hash_key({"page": 2})
