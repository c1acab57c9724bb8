# File: wpstudio/infrastructure/wordpress/sdk.py
# Purpose: WordPress REST API client with version-tagged response caching
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog

from wpstudio.infrastructure.cache.cache_manager import CacheManager
from wpstudio.infrastructure.http.client import ExternalServiceClient, TokenResolver
from wpstudio.infrastructure.http.retry_policy import RetryPolicy

logger = structlog.get_logger(__name__)

# Cache lifetimes in seconds per read operation
CACHE_TTLS = {
    "posts": 5 * 60,
    "post": 10 * 60,
    "media": 15 * 60,
    "categories": 30 * 60,
    "category": 30 * 60,
    "tags": 30 * 60,
    "tag": 30 * 60,
    "users": 60 * 60,
}

# Collections whose list reads are versioned, mapped to their single-entity key name
VERSIONED_COLLECTIONS = {
    "posts": "post",
    "categories": "category",
    "tags": "tag",
}

TOKEN_ENDPOINT = "jwt-auth/v1/token"
CACHE_PREFIX = "wp."


class WordPressSdk(ExternalServiceClient):
    """
    Client for the WordPress REST API (``/wp-json/{namespace}``).

    List reads of posts, categories and tags are cached under
    ``wp.{collection}.v{version}.{hash}``. Mutating a collection bumps its
    version counter so every cached list of that collection becomes
    unreachable at once, and drops the cached single-entity reads of the
    mutated id. Entries also expire on their own TTL.
    """

    service_name = "wordpress"

    def __init__(
        self,
        base_url: str,
        cache: CacheManager,
        *,
        namespace: str = "wp/v2",
        token_resolver: Optional[TokenResolver] = None,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        retry_policy: Optional[RetryPolicy] = None,
        verify_tls: bool = True,
        user_agent: str = "WpStudioWordPressSdk/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url,
            token_resolver=token_resolver,
            timeout=timeout,
            connect_timeout=connect_timeout,
            retry_policy=retry_policy,
            verify_tls=verify_tls,
            headers={"User-Agent": user_agent},
            transport=transport,
        )
        self.cache = cache
        self.namespace = namespace.strip("/")

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    async def get(self, resource: str, query: Optional[dict[str, Any]] = None) -> Any:
        """Uncached GET of ``{namespace}/{resource}``."""
        query = query or {}
        return await self._request(
            "GET", self._qualify(resource), params=query, context={"filter": query}
        )

    async def create(self, resource: str, payload: dict[str, Any]) -> Any:
        result = await self._request(
            "POST", self._qualify(resource), json_body=payload, context={"payload": payload}
        )
        await self._invalidate_after_write(resource)
        return result

    async def update(self, resource: str, id: int, payload: dict[str, Any]) -> Any:
        # WordPress accepts POST for partial updates of an existing item
        result = await self._request(
            "POST", self._qualify(f"{resource}/{id}"), json_body=payload, context={"payload": payload}
        )
        await self._invalidate_after_write(resource, id)
        return result

    async def delete(self, resource: str, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        query = query or {}
        result = await self._request(
            "DELETE", self._qualify(f"{resource}/{id}"), params=query, context={"filter": query}
        )
        await self._invalidate_after_write(resource, id)
        return result

    async def token(self, username: str, password: str) -> Any:
        """
        Exchange credentials for a JWT at ``jwt-auth/v1/token``.

        The endpoint lives outside the REST namespace. The password and the
        returned token are masked in every log record.
        """
        return await self._request(
            "POST",
            TOKEN_ENDPOINT,
            json_body={"username": username, "password": password},
            context={"payload": {"username": username}},
        )

    exchange_token = token

    # ------------------------------------------------------------------
    # Cached reads
    # ------------------------------------------------------------------

    async def posts(self, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_list("posts", query)

    async def post(self, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_item("posts", id, query)

    async def pages(self, query: Optional[dict[str, Any]] = None) -> Any:
        return await self.get("pages", query)

    async def media(self, query: Optional[dict[str, Any]] = None) -> Any:
        query = query or {}
        key = f"{CACHE_PREFIX}media.{CacheManager.hash_key(query)}"
        return await self._remember(key, CACHE_TTLS["media"], lambda: self.get("media", query))

    async def categories(self, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_list("categories", query)

    async def category(self, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_item("categories", id, query)

    async def create_category(self, payload: dict[str, Any]) -> Any:
        return await self.create("categories", payload)

    async def update_category(self, id: int, payload: dict[str, Any]) -> Any:
        return await self.update("categories", id, payload)

    async def delete_category(self, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        return await self.delete("categories", id, query)

    async def tags(self, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_list("tags", query)

    async def tag(self, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        return await self._cached_item("tags", id, query)

    async def create_tag(self, payload: dict[str, Any]) -> Any:
        return await self.create("tags", payload)

    async def update_tag(self, id: int, payload: dict[str, Any]) -> Any:
        return await self.update("tags", id, payload)

    async def delete_tag(self, id: int, query: Optional[dict[str, Any]] = None) -> Any:
        return await self.delete("tags", id, query)

    async def users(self, query: Optional[dict[str, Any]] = None) -> Any:
        query = query or {}
        key = f"{CACHE_PREFIX}users.{CacheManager.hash_key(query)}"
        return await self._remember(key, CACHE_TTLS["users"], lambda: self.get("users", query))

    async def search(self, query: Optional[dict[str, Any]] = None) -> Any:
        return await self.get("search", query)

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    async def invalidate_list_cache(self, collection: str) -> Optional[int]:
        """Bump the version of a collection; returns the new version."""
        version = await self.cache.increment(self._version_key(collection))
        if version is None:
            logger.warning("wordpress_cache_version_bump_failed", collection=collection)
        else:
            logger.info("wordpress_cache_version_bumped", collection=collection, version=version)
        return version

    async def invalidate_item_cache(self, collection: str, id: int) -> int:
        entity = VERSIONED_COLLECTIONS.get(collection, collection)
        return await self.cache.delete_pattern(f"{CACHE_PREFIX}{entity}.{id}.*")

    async def invalidate_category_cache(self, id: int) -> int:
        return await self.invalidate_item_cache("categories", id)

    async def invalidate_category_list_cache(self) -> Optional[int]:
        return await self.invalidate_list_cache("categories")

    async def invalidate_post_cache(self, id: int) -> int:
        return await self.invalidate_item_cache("posts", id)

    async def invalidate_post_list_cache(self) -> Optional[int]:
        return await self.invalidate_list_cache("posts")

    async def clear_cache(self, prefix: str = CACHE_PREFIX) -> int:
        """Delete every cached WordPress entry whose key starts with prefix."""
        deleted = await self.cache.delete_pattern(f"{prefix}*")
        logger.info("wordpress_cache_cleared", prefix=prefix, count=deleted)
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _qualify(self, resource: str) -> str:
        return f"{self.namespace}/{resource.lstrip('/')}"

    @staticmethod
    def _version_key(collection: str) -> str:
        return f"{CACHE_PREFIX}{collection}.version"

    async def _collection_version(self, collection: str) -> int:
        value = await self.cache.get(self._version_key(collection))
        try:
            return max(0, int(value or 0))
        except ValueError:
            return 0

    async def _cached_list(self, collection: str, query: Optional[dict[str, Any]]) -> Any:
        query = query or {}
        version = await self._collection_version(collection)
        key = f"{CACHE_PREFIX}{collection}.v{version}.{CacheManager.hash_key(query)}"
        return await self._remember(key, CACHE_TTLS[collection], lambda: self.get(collection, query))

    async def _cached_item(self, collection: str, id: int, query: Optional[dict[str, Any]]) -> Any:
        query = query or {}
        entity = VERSIONED_COLLECTIONS[collection]
        key = f"{CACHE_PREFIX}{entity}.{id}.{CacheManager.hash_key(query)}"
        return await self._remember(key, CACHE_TTLS[entity], lambda: self.get(f"{collection}/{id}", query))

    async def _remember(self, key: str, ttl: int, resolver: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self.cache.get_json(key)
        if cached is not None:
            return cached
        value = await resolver()
        await self.cache.set_json(key, value, ttl=ttl)
        return value

    async def _invalidate_after_write(self, resource: str, id: Optional[int] = None) -> None:
        collection = resource.strip("/").split("/", 1)[0]
        if collection not in VERSIONED_COLLECTIONS:
            return
        if id is not None:
            await self.invalidate_item_cache(collection, id)
        await self.invalidate_list_cache(collection)
