# File: tests/test_wordpress_sdk.py
# Purpose: WordPress SDK: namespaced routing, version-tagged list caching, invalidation and credential redaction
import json

import httpx
import pytest
from structlog.testing import capture_logs

from wpstudio.core.exceptions import InvalidJSONError, ServiceConnectionError, ServiceUnavailableError
from wpstudio.infrastructure.wordpress.sdk import CACHE_TTLS


CATEGORIES_PATH = "/wp-json/wp/v2/categories"
TOKEN_PATH = "/wp-json/jwt-auth/v1/token"

NEWS = {"id": 12, "name": "Nachrichten", "slug": "nachrichten", "parent": 0}


class TestRouting:
    """Resources resolve below the configured REST namespace"""

    @pytest.mark.asyncio
    async def test_resource_is_namespaced(self, upstream, make_wordpress_sdk):
        upstream.add("GET", "/wp-json/wp/v2/pages", httpx.Response(200, json=[]))

        await make_wordpress_sdk().pages({"per_page": 5})

        request = upstream.requests[0]
        assert request.url.path == "/wp-json/wp/v2/pages"
        assert request.url.params["per_page"] == "5"

    @pytest.mark.asyncio
    async def test_custom_namespace(self, upstream, make_wordpress_sdk):
        upstream.add("GET", "/wp-json/acme/v1/reports", httpx.Response(200, json=[]))

        await make_wordpress_sdk(namespace="/acme/v1/").get("reports")

        assert len(upstream.calls("GET", "/wp-json/acme/v1/reports")) == 1

    @pytest.mark.asyncio
    async def test_token_resolver_supplies_bearer(self, upstream, make_wordpress_sdk):
        upstream.add("GET", "/wp-json/wp/v2/users", httpx.Response(200, json=[]))

        async def resolve_token():
            return "jwt-abc"

        await make_wordpress_sdk(token_resolver=resolve_token).users()

        assert upstream.requests[0].headers["Authorization"] == "Bearer jwt-abc"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self, upstream, make_wordpress_sdk):
        upstream.add("GET", "/wp-json/wp/v2/search", httpx.Response(200, json=[]))

        await make_wordpress_sdk(token_resolver=lambda: None).search({"search": "wp"})

        assert "Authorization" not in upstream.requests[0].headers


class TestListCaching:
    """Version-tagged list cache"""

    @pytest.mark.asyncio
    async def test_repeated_list_served_from_cache(self, upstream, make_wordpress_sdk):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        sdk = make_wordpress_sdk()

        first = await sdk.categories({"per_page": 20})
        second = await sdk.categories({"per_page": 20})

        assert first == second == [NEWS]
        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 1

    @pytest.mark.asyncio
    async def test_different_queries_cached_separately(self, upstream, make_wordpress_sdk):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        sdk = make_wordpress_sdk()

        await sdk.categories({"page": 1})
        await sdk.categories({"page": 2})

        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 2

    @pytest.mark.asyncio
    async def test_create_makes_cached_lists_unreachable(self, upstream, make_wordpress_sdk, memory_cache):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        upstream.add("POST", CATEGORIES_PATH, httpx.Response(201, json={"id": 13, "name": "Sport"}))
        sdk = make_wordpress_sdk()

        await sdk.categories()
        await sdk.create_category({"name": "Sport"})
        await sdk.categories()

        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 2
        assert await memory_cache.get("wp.categories.version") == "1"

    @pytest.mark.asyncio
    async def test_write_to_other_collection_keeps_cache(self, upstream, make_wordpress_sdk):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        upstream.add("POST", "/wp-json/wp/v2/tags", httpx.Response(201, json={"id": 3}))
        sdk = make_wordpress_sdk()

        await sdk.categories()
        await sdk.create_tag({"name": "python"})
        await sdk.categories()

        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 1

    @pytest.mark.asyncio
    async def test_list_expires_after_ttl(self, upstream, make_wordpress_sdk, memory_cache, monkeypatch):
        now = [1000.0]
        monkeypatch.setattr(memory_cache, "_now", lambda: now[0])
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        sdk = make_wordpress_sdk()

        await sdk.categories()
        now[0] += CACHE_TTLS["categories"]
        await sdk.categories()

        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 2

    @pytest.mark.asyncio
    async def test_failed_read_is_not_cached(self, upstream, make_wordpress_sdk):
        upstream.add(
            "GET", CATEGORIES_PATH,
            httpx.Response(503, text="maintenance"),
            httpx.Response(200, json=[NEWS]),
        )
        sdk = make_wordpress_sdk()

        with pytest.raises(ServiceUnavailableError):
            await sdk.categories()

        assert await sdk.categories() == [NEWS]


class TestItemCaching:
    @pytest.mark.asyncio
    async def test_update_drops_item_and_list_cache(self, upstream, make_wordpress_sdk):
        item_path = f"{CATEGORIES_PATH}/12"
        upstream.add("GET", item_path, httpx.Response(200, json=NEWS))
        upstream.add("POST", item_path, httpx.Response(200, json={**NEWS, "name": "News"}))
        sdk = make_wordpress_sdk()

        await sdk.category(12)
        await sdk.category(12)
        await sdk.update_category(12, {"name": "News"})
        await sdk.category(12)

        assert len(upstream.calls("GET", item_path)) == 2
        sent = json.loads(upstream.calls("POST", item_path)[0].content)
        assert sent == {"name": "News"}

    @pytest.mark.asyncio
    async def test_delete_sends_query_and_invalidates(self, upstream, make_wordpress_sdk, memory_cache):
        item_path = "/wp-json/wp/v2/tags/7"
        upstream.add("DELETE", item_path, httpx.Response(200, json={"deleted": True}))
        sdk = make_wordpress_sdk()
        await memory_cache.set_json("wp.tag.7.abc", {"id": 7})

        result = await sdk.delete_tag(7, {"force": "true"})

        assert result == {"deleted": True}
        assert upstream.requests[0].url.params["force"] == "true"
        assert await memory_cache.get("wp.tag.7.abc") is None
        assert await memory_cache.get("wp.tags.version") == "1"

    @pytest.mark.asyncio
    async def test_clear_cache(self, upstream, make_wordpress_sdk):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[NEWS]))
        sdk = make_wordpress_sdk()

        await sdk.categories()
        assert await sdk.clear_cache() >= 1
        await sdk.categories()

        assert len(upstream.calls("GET", CATEGORIES_PATH)) == 2


class TestTokenExchange:
    """JWT token endpoint outside the REST namespace"""

    @pytest.mark.asyncio
    async def test_posts_credentials(self, upstream, make_wordpress_sdk):
        upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"token": "abcdef123456", "user_email": "a@b.c"}))

        result = await make_wordpress_sdk().token("admin", "secret123")

        assert result["token"] == "abcdef123456"
        assert json.loads(upstream.requests[0].content) == {"username": "admin", "password": "secret123"}

    @pytest.mark.asyncio
    async def test_credentials_never_logged_in_clear(self, upstream, make_wordpress_sdk):
        upstream.add("POST", TOKEN_PATH, httpx.Response(200, json={"token": "abcdef123456"}))

        with capture_logs() as logs:
            await make_wordpress_sdk().exchange_token("admin", "secret123")

        rendered = repr(logs)
        assert "secret123" not in rendered
        assert "abcdef123456" not in rendered
        assert "abcd*****3456" in rendered

    @pytest.mark.asyncio
    async def test_failed_exchange_keeps_password_out_of_context(self, upstream, make_wordpress_sdk):
        upstream.add("POST", TOKEN_PATH, httpx.Response(403, json={"code": "invalid_password"}))

        with pytest.raises(ServiceConnectionError) as exc_info:
            await make_wordpress_sdk().token("admin", "secret123")

        assert exc_info.value.source_status() == 403
        assert "secret123" not in repr(exc_info.value.context)


class TestErrors:
    @pytest.mark.asyncio
    async def test_not_found(self, upstream, make_wordpress_sdk):
        with pytest.raises(ServiceConnectionError) as exc_info:
            await make_wordpress_sdk().category(99)

        error = exc_info.value
        assert error.source_status() == 404
        assert error.code == 404
        assert error.service == "wordpress"
        assert error.context["endpoint"] == "wp/v2/categories/99"

    @pytest.mark.asyncio
    async def test_invalid_json(self, upstream, make_wordpress_sdk):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, content=b"<!DOCTYPE html>"))

        with pytest.raises(InvalidJSONError):
            await make_wordpress_sdk().categories()

    @pytest.mark.asyncio
    async def test_empty_body_decodes_to_empty_map(self, upstream, make_wordpress_sdk):
        upstream.add("DELETE", f"{CATEGORIES_PATH}/4", httpx.Response(204))

        assert await make_wordpress_sdk().delete_category(4) == {}
