# File: wpstudio/services/tag_service.py
# Purpose: WordPress tag management with audit logging
from typing import Any, Optional

from wpstudio.infrastructure.logging.action_logger import ActionLogger
from wpstudio.infrastructure.wordpress.sdk import WordPressSdk
from wpstudio.services.category_service import DEFAULT_PER_PAGE, filter_payload


class TagService:
    """Service for listing and mutating WordPress tags."""

    def __init__(self, sdk: WordPressSdk, action_logger: ActionLogger):
        self.sdk = sdk
        self.action_logger = action_logger

    async def list(self, filters: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        filters = filters or {}
        query = {
            "search": filters.get("search"),
            "per_page": filters.get("per_page") or DEFAULT_PER_PAGE,
            "page": filters.get("page") or 1,
            "context": "view",
            "orderby": "name",
            "order": "asc",
        }
        query = {key: value for key, value in query.items() if value is not None and value != ""}

        tags = await self.sdk.tags(query)
        return tags if isinstance(tags, list) else []

    async def create(self, payload: dict[str, Any], actor: Optional[str] = None) -> dict[str, Any]:
        body = await self.sdk.create_tag(filter_payload(payload))
        self.action_logger.log("wordpress.tag.created", actor, {}, body, {"source": "wordpress"})
        return body

    async def update(self, tag_id: int, payload: dict[str, Any], actor: Optional[str] = None) -> dict[str, Any]:
        before = await self.sdk.tag(tag_id)
        body = await self.sdk.update_tag(tag_id, filter_payload(payload))

        self.action_logger.log(
            "wordpress.tag.updated",
            actor,
            before,
            body,
            {"source": "wordpress", "tag_id": tag_id},
        )
        return body

    async def delete(self, tag_id: int, force: bool = True, actor: Optional[str] = None) -> dict[str, Any]:
        before = await self.sdk.tag(tag_id)
        body = await self.sdk.delete_tag(tag_id, {"force": force})

        self.action_logger.log(
            "wordpress.tag.deleted",
            actor,
            before,
            body,
            {"source": "wordpress", "tag_id": tag_id, "force": force},
        )
        return body
