# File: tests/test_category_service.py
# Purpose: Category listing, audited writes and eligible-parent resolution
import json
import typing

import httpx
import pytest
from structlog.testing import capture_logs

from wpstudio.services.category_service import PARENTS_PAGE_SIZE, CategoryService, filter_payload


CATEGORIES_PATH = "/wp-json/wp/v2/categories"


def category(id, name, parent=0, status=None, slug=None):
    entry = {"id": id, "name": name, "slug": slug or name.lower(), "parent": parent}
    if status:
        entry["status"] = status
    return entry


@pytest.fixture()
def service(make_wordpress_sdk, action_logger):
    return CategoryService(make_wordpress_sdk(), action_logger)


def paged(*pages):
    """Serve the given pages by the ``page`` query parameter."""
    def handler(request: httpx.Request) -> httpx.Response:
        index = int(request.url.params.get("page", "1")) - 1
        return httpx.Response(200, json=pages[index] if index < len(pages) else [])
    return handler


def audit_records(logs):
    return [log for log in logs if log["event"] == "domain_action_recorded"]


class TestFilterPayload:
    def test_drops_none_and_blank_strings(self):
        assert filter_payload({"name": "News", "slug": "  ", "description": None, "parent": 0}) == {
            "name": "News",
            "parent": 0,
        }


class TestListCategories:
    """Listing with default ordering and trash handling"""

    @pytest.mark.asyncio
    async def test_default_query(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[category(1, "A")]))

        await service.list()

        params = upstream.requests[0].url.params
        assert params["per_page"] == "20"
        assert params["page"] == "1"
        assert params["context"] == "view"
        assert params["orderby"] == "name"
        assert params["order"] == "asc"
        assert "search" not in params

    @pytest.mark.asyncio
    async def test_trashed_removed_unless_requested(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json=[
            category(1, "Live"),
            category(2, "Old", status="trash"),
        ]))

        assert [c["id"] for c in await service.list()] == [1]
        assert [c["id"] for c in await service.list({"include_trashed": True})] == [1, 2]

    @pytest.mark.asyncio
    async def test_non_list_response(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, httpx.Response(200, json={"code": "unexpected"}))
        assert await service.list() == []


class TestCategoryWrites:
    """Writes are recorded on the action channel"""

    @pytest.mark.asyncio
    async def test_create_filters_payload_and_audits(self, upstream, service):
        upstream.add("POST", CATEGORIES_PATH, httpx.Response(201, json=category(5, "Sport")))

        with capture_logs() as logs:
            body = await service.create({"name": "Sport", "description": ""}, actor="editor")

        assert body["id"] == 5
        assert json.loads(upstream.requests[0].content) == {"name": "Sport"}
        record = audit_records(logs)[0]
        assert record["operation"] == "wordpress.category.created"
        assert record["actor"] == "editor"
        assert record["before"] == {}
        assert record["after"]["id"] == 5
        assert record["metadata"] == {"source": "wordpress"}

    @pytest.mark.asyncio
    async def test_update_records_before_and_after(self, upstream, service):
        path = f"{CATEGORIES_PATH}/5"
        upstream.add("GET", path, httpx.Response(200, json=category(5, "Sport")))
        upstream.add("POST", path, httpx.Response(200, json=category(5, "Sports")))

        with capture_logs() as logs:
            await service.update(5, {"name": "Sports", "slug": None})

        assert json.loads(upstream.calls("POST", path)[0].content) == {"name": "Sports"}
        record = audit_records(logs)[0]
        assert record["operation"] == "wordpress.category.updated"
        assert record["before"]["name"] == "Sport"
        assert record["after"]["name"] == "Sports"
        assert record["metadata"] == {"source": "wordpress", "category_id": 5}

    @pytest.mark.asyncio
    async def test_delete_forces_by_default(self, upstream, service):
        path = f"{CATEGORIES_PATH}/5"
        upstream.add("GET", path, httpx.Response(200, json=category(5, "Sport")))
        upstream.add("DELETE", path, httpx.Response(200, json={"deleted": True}))

        with capture_logs() as logs:
            await service.delete(5)

        assert upstream.calls("DELETE", path)[0].url.params["force"] == "true"
        assert audit_records(logs)[0]["metadata"]["force"] is True


class TestEligibleParents:
    """Parent candidates for a category being edited"""

    @pytest.mark.asyncio
    async def test_excludes_self_and_descendants(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, paged([
            category(1, "News"),
            category(2, "World", parent=1),
            category(3, "Europe", parent=2),
            category(4, "Sport"),
            category(5, "Football", parent=4),
        ]))

        parents = await service.eligible_parents(exclude=2)

        assert [p["id"] for p in parents] == [1, 4, 5]

    @pytest.mark.asyncio
    async def test_depth_and_sort_order(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, paged([
            category(3, "Europe", parent=2),
            category(4, "Sport"),
            category(2, "World", parent=1),
            category(1, "News"),
        ]))

        parents = await service.eligible_parents()

        assert [(p["name"], p["depth"]) for p in parents] == [
            ("News", 0),
            ("Sport", 0),
            ("World", 1),
            ("Europe", 2),
        ]
        assert parents[3] == {
            "id": 3, "name": "Europe", "slug": "europe", "parent": 2, "depth": 2, "status": None,
        }

    @pytest.mark.asyncio
    async def test_pages_through_all_categories(self, upstream, service):
        first_page = [category(i, f"Cat {i:03d}") for i in range(1, PARENTS_PAGE_SIZE + 1)]
        second_page = [category(PARENTS_PAGE_SIZE + 1, "Zeta")]
        upstream.add("GET", CATEGORIES_PATH, paged(first_page, second_page))

        parents = await service.eligible_parents()

        assert len(parents) == PARENTS_PAGE_SIZE + 1
        assert [r.url.params["page"] for r in upstream.calls("GET", CATEGORIES_PATH)] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_parent_cycle_terminates(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, paged([
            category(1, "A", parent=2),
            category(2, "B", parent=1),
        ]))

        parents = await service.eligible_parents()

        assert {p["id"]: p["depth"] for p in parents} == {1: 1, 2: 1}

    @pytest.mark.asyncio
    async def test_trashed_parents_skipped(self, upstream, service):
        upstream.add("GET", CATEGORIES_PATH, paged([
            category(1, "Live"),
            category(2, "Gone", status="trash"),
        ]))

        assert [p["id"] for p in await service.eligible_parents()] == [1]
        assert [p["id"] for p in await service.eligible_parents(include_trashed=True)] == [2, 1]


class TestServiceSignatures:
    def test_list_method_does_not_shadow_builtin_in_annotations(self):
        hints = typing.get_type_hints(CategoryService.eligible_parents)
        assert hints["return"] == list[dict[str, typing.Any]]
