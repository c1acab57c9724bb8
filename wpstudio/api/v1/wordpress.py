# File: wpstudio/api/v1/wordpress.py
# Purpose: WordPress taxonomy and token API endpoints
from fastapi import APIRouter, Depends, Header, Query
from typing import Optional
import structlog

from wpstudio.api.responses import ApiResponse
from wpstudio.api.schemas.wordpress import (
    CategoryCreatePayload,
    CategoryUpdatePayload,
    TagCreatePayload,
    TagUpdatePayload,
    TokenRequest
)
from wpstudio.core.exceptions import ExternalServiceError
from wpstudio.dependencies import get_category_service, get_tag_service, get_wordpress_sdk
from wpstudio.infrastructure.logging.formatters import SensitiveDataFilter
from wpstudio.infrastructure.wordpress.sdk import WordPressSdk
from wpstudio.middleware.error_handler import handle_external_service_error
from wpstudio.services.category_service import DEFAULT_PER_PAGE, CategoryService
from wpstudio.services.tag_service import TagService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/wordpress", tags=["wordpress"])


def _list_filters(search: Optional[str], per_page: int, page: int, include_trashed: bool = False) -> dict:
    return {"search": search, "per_page": per_page, "page": page, "include_trashed": include_trashed}


# ============================================================================
# Categories
# ============================================================================

@router.get("/categories")
async def list_categories(
    search: Optional[str] = Query(None, max_length=200),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
    page: int = Query(1, ge=1),
    include_trashed: bool = Query(False),
    service: CategoryService = Depends(get_category_service)
):
    """List categories ordered by name"""
    filters = _list_filters(search, per_page, page, include_trashed)
    try:
        categories = await service.list(filters)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.categories.list_failed", additional_meta={"filters": filters}
        )

    return ApiResponse.success(
        code="wordpress.categories.list",
        message="Categories retrieved successfully.",
        data={"items": categories},
        meta={"filters": filters},
    )


@router.get("/categories/parents")
async def list_parent_categories(
    exclude: Optional[int] = Query(None, ge=0, description="Category being edited"),
    include_trashed: bool = Query(False),
    service: CategoryService = Depends(get_category_service)
):
    """
    Categories eligible as parent of ``exclude``.
    The category itself and its descendants are left out to prevent cycles.
    """
    try:
        parents = await service.eligible_parents(exclude if exclude else None, include_trashed)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e,
            "wordpress.categories.parents_failed",
            additional_meta={"filters": {"exclude": exclude, "include_trashed": include_trashed}},
        )

    return ApiResponse.success(
        code="wordpress.categories.parents",
        message="Eligible parent categories retrieved successfully.",
        data={"items": parents, "hierarchy": True},
    )


@router.post("/categories")
async def create_category(
    payload: CategoryCreatePayload,
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: CategoryService = Depends(get_category_service)
):
    try:
        created = await service.create(payload.model_dump(), actor)
    except ExternalServiceError as e:
        return handle_external_service_error(e, "wordpress.categories.create_failed")

    return ApiResponse.success(
        code="wordpress.categories.created",
        message="Category created in WordPress.",
        data=created,
        status=201,
    )


@router.api_route("/categories/{category_id}", methods=["POST", "PATCH"])
async def update_category(
    category_id: int,
    payload: CategoryUpdatePayload,
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: CategoryService = Depends(get_category_service)
):
    try:
        updated = await service.update(category_id, payload.model_dump(), actor)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.categories.update_failed", additional_meta={"category_id": category_id}
        )

    return ApiResponse.success(
        code="wordpress.categories.updated",
        message="Category updated in WordPress.",
        data=updated,
    )


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    force: bool = Query(True, description="Bypass the trash"),
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: CategoryService = Depends(get_category_service)
):
    try:
        deleted = await service.delete(category_id, force, actor)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.categories.delete_failed", additional_meta={"category_id": category_id}
        )

    return ApiResponse.success(
        code="wordpress.categories.deleted",
        message="Category deleted from WordPress.",
        data=deleted,
    )


# ============================================================================
# Tags
# ============================================================================

@router.get("/tags")
async def list_tags(
    search: Optional[str] = Query(None, max_length=200),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=100),
    page: int = Query(1, ge=1),
    service: TagService = Depends(get_tag_service)
):
    """List tags ordered by name"""
    filters = _list_filters(search, per_page, page)
    try:
        tags = await service.list(filters)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.tags.list_failed", additional_meta={"filters": filters}
        )

    return ApiResponse.success(
        code="wordpress.tags.list",
        message="Tags retrieved successfully.",
        data={"items": tags},
        meta={"filters": filters},
    )


@router.post("/tags")
async def create_tag(
    payload: TagCreatePayload,
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: TagService = Depends(get_tag_service)
):
    try:
        created = await service.create(payload.model_dump(), actor)
    except ExternalServiceError as e:
        return handle_external_service_error(e, "wordpress.tags.create_failed")

    return ApiResponse.success(
        code="wordpress.tags.created",
        message="Tag created in WordPress.",
        data=created,
        status=201,
    )


@router.api_route("/tags/{tag_id}", methods=["POST", "PATCH"])
async def update_tag(
    tag_id: int,
    payload: TagUpdatePayload,
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: TagService = Depends(get_tag_service)
):
    try:
        updated = await service.update(tag_id, payload.model_dump(), actor)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.tags.update_failed", additional_meta={"tag_id": tag_id}
        )

    return ApiResponse.success(
        code="wordpress.tags.updated",
        message="Tag updated in WordPress.",
        data=updated,
    )


@router.delete("/tags/{tag_id}")
async def delete_tag(
    tag_id: int,
    force: bool = Query(True, description="Bypass the trash"),
    actor: Optional[str] = Header(None, alias="X-Actor"),
    service: TagService = Depends(get_tag_service)
):
    try:
        deleted = await service.delete(tag_id, force, actor)
    except ExternalServiceError as e:
        return handle_external_service_error(
            e, "wordpress.tags.delete_failed", additional_meta={"tag_id": tag_id}
        )

    return ApiResponse.success(
        code="wordpress.tags.deleted",
        message="Tag deleted from WordPress.",
        data=deleted,
    )


# ============================================================================
# Token
# ============================================================================

@router.post("/token")
async def exchange_token(
    credentials: TokenRequest,
    sdk: WordPressSdk = Depends(get_wordpress_sdk)
):
    """
    Exchange WordPress credentials for a JWT.
    The token is returned to the caller once; only its masked form is logged.
    """
    try:
        body = await sdk.token(credentials.username, credentials.password)
    except ExternalServiceError as e:
        return handle_external_service_error(e, "wordpress.token_failed")

    token = body.get("token") if isinstance(body, dict) else None
    masked = SensitiveDataFilter.mask_token(token) if token else None
    logger.info("wordpress_token_issued", username=credentials.username, masked_token=masked)

    return ApiResponse.success(
        code="wordpress.token_created",
        message="Token retrieved successfully.",
        data={
            "username": credentials.username,
            "token": token,
            "masked_token": masked,
            "user_display_name": body.get("user_display_name") if isinstance(body, dict) else None,
        },
        status=201,
    )
