# File: wpstudio/services/category_service.py
# Purpose: WordPress category management with audit logging and parent hierarchy resolution
from __future__ import annotations

from typing import Any, Optional
import structlog

from wpstudio.infrastructure.logging.action_logger import ActionLogger
from wpstudio.infrastructure.wordpress.sdk import WordPressSdk

logger = structlog.get_logger(__name__)

DEFAULT_PER_PAGE = 20
PARENTS_PAGE_SIZE = 100  # WordPress REST API per_page ceiling


def filter_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop None values and blank strings so WordPress keeps existing fields."""
    return {
        key: value for key, value in payload.items()
        if value is not None and not (isinstance(value, str) and value.strip() == "")
    }


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return 0


class CategoryService:
    """
    Service for managing WordPress categories.
    Reads go through the SDK cache; writes are recorded with before/after snapshots.
    """

    def __init__(self, sdk: WordPressSdk, action_logger: ActionLogger):
        self.sdk = sdk
        self.action_logger = action_logger

    async def list(self, filters: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """
        List categories ordered by name.

        Args:
            filters: Optional ``search``, ``per_page``, ``page`` and ``include_trashed``

        Returns:
            Category dictionaries, trashed entries removed unless requested
        """
        filters = filters or {}
        include_trashed = bool(filters.get("include_trashed", False))
        query = {
            "search": filters.get("search"),
            "per_page": filters.get("per_page") or DEFAULT_PER_PAGE,
            "page": filters.get("page") or 1,
            "context": "view",
            "orderby": "name",
            "order": "asc",
        }
        query = {key: value for key, value in query.items() if value is not None}

        categories = await self.sdk.categories(query)
        if not isinstance(categories, list):
            return []

        if not include_trashed:
            categories = [
                category for category in categories
                if not isinstance(category, dict) or category.get("status") != "trash"
            ]

        return categories

    async def create(self, payload: dict[str, Any], actor: Optional[str] = None) -> dict[str, Any]:
        body = await self.sdk.create_category(filter_payload(payload))

        self.action_logger.log(
            "wordpress.category.created",
            actor,
            {},
            body,
            {"source": "wordpress"},
        )
        return body

    async def update(self, category_id: int, payload: dict[str, Any], actor: Optional[str] = None) -> dict[str, Any]:
        before = await self.sdk.category(category_id)
        body = await self.sdk.update_category(category_id, filter_payload(payload))

        self.action_logger.log(
            "wordpress.category.updated",
            actor,
            before,
            body,
            {"source": "wordpress", "category_id": category_id},
        )
        return body

    async def delete(self, category_id: int, force: bool = True, actor: Optional[str] = None) -> dict[str, Any]:
        before = await self.sdk.category(category_id)
        body = await self.sdk.delete_category(category_id, {"force": force})

        self.action_logger.log(
            "wordpress.category.deleted",
            actor,
            before,
            body,
            {"source": "wordpress", "category_id": category_id, "force": force},
        )
        return body

    async def eligible_parents(
        self,
        exclude: Optional[int] = None,
        include_trashed: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Categories that may become the parent of ``exclude``.

        Pages through every category, drops ``exclude`` and all of its
        descendants (a category cannot be nested under itself), and annotates
        each entry with its depth in the hierarchy.

        Args:
            exclude: Category being edited, if any
            include_trashed: Keep categories whose status is "trash"

        Returns:
            Entries of {id, name, slug, parent, depth, status} sorted by depth then name
        """
        all_categories: list[dict[str, Any]] = []
        page = 1
        while True:
            batch = await self.sdk.categories({
                "per_page": PARENTS_PAGE_SIZE,
                "page": page,
                "orderby": "name",
                "order": "asc",
            })
            if not isinstance(batch, list):
                break
            all_categories.extend(item for item in batch if isinstance(item, dict))
            if len(batch) < PARENTS_PAGE_SIZE:
                break
            page += 1

        category_map = {}
        for category in all_categories:
            category_id = _as_int(category.get("id"))
            if category_id > 0:
                category_map[category_id] = category

        excluded: set[int] = set()
        if exclude is not None and exclude > 0:
            excluded = self._descendant_ids(exclude, category_map)
            excluded.add(exclude)

        eligible = []
        for category in all_categories:
            category_id = _as_int(category.get("id"))
            if category_id in excluded:
                continue

            status = category.get("status") if isinstance(category.get("status"), str) else None
            if not include_trashed and status == "trash":
                continue

            name = category.get("name")
            slug = category.get("slug")
            eligible.append({
                "id": category_id,
                "name": name if isinstance(name, str) else "",
                "slug": slug if isinstance(slug, str) else "",
                "parent": _as_int(category.get("parent")),
                "depth": self._depth(category_id, category_map),
                "status": status,
            })

        eligible.sort(key=lambda item: (item["depth"], item["name"]))

        logger.debug(
            "eligible_parents_resolved",
            exclude=exclude,
            fetched=len(all_categories),
            eligible=len(eligible),
        )
        return eligible

    def _descendant_ids(self, category_id: int, category_map: dict[int, dict[str, Any]]) -> set[int]:
        descendants: set[int] = set()
        pending = [category_id]
        while pending:
            current = pending.pop()
            for child_id, child in category_map.items():
                if child_id in descendants or child_id == category_id:
                    continue
                if _as_int(child.get("parent")) == current:
                    descendants.add(child_id)
                    pending.append(child_id)
        return descendants

    def _depth(self, category_id: int, category_map: dict[int, dict[str, Any]]) -> int:
        depth = 0
        seen = {category_id}
        current = category_map.get(category_id)
        while current is not None:
            parent_id = _as_int(current.get("parent"))
            # Stop on root or on a parent cycle
            if parent_id == 0 or parent_id in seen:
                break
            seen.add(parent_id)
            depth += 1
            current = category_map.get(parent_id)
        return depth
