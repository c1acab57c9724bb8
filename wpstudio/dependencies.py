# File: wpstudio/dependencies.py
# Purpose: Dependency injection for FastAPI with proper lifecycle management
from typing import AsyncGenerator, Optional
from fastapi import Depends
from redis.asyncio import Redis
import structlog

from wpstudio.config import Settings, get_settings
from wpstudio.core.exceptions import FeatureUnavailableError
from wpstudio.infrastructure.cache.redis_client import get_redis_client
from wpstudio.infrastructure.cache.cache_manager import CacheManager
from wpstudio.infrastructure.http.retry_policy import RetryPolicy
from wpstudio.infrastructure.lmstudio.sdk import LmStudioSdk
from wpstudio.infrastructure.logging.action_logger import ActionLogger
from wpstudio.infrastructure.wordpress.sdk import WordPressSdk
from wpstudio.services.category_service import CategoryService
from wpstudio.services.tag_service import TagService

logger = structlog.get_logger(__name__)


# ============================================================================
# Configuration Dependencies
# ============================================================================

def get_app_settings() -> Settings:
    """
    Get application settings (singleton).

    Returns:
        Settings instance
    """
    return get_settings()


# ============================================================================
# Cache Dependencies
# ============================================================================

async def get_redis(
    settings: Settings = Depends(get_app_settings)
) -> AsyncGenerator[Optional[Redis], None]:
    """
    Get Redis client with automatic lifecycle management.

    Yields:
        Redis client or None if unavailable
    """
    async for redis in get_redis_client(settings):
        yield redis


async def get_cache_manager(
    redis: Optional[Redis] = Depends(get_redis),
    settings: Settings = Depends(get_app_settings)
) -> CacheManager:
    """
    Get cache manager instance.

    Returns:
        Cache manager (in-memory when Redis is unavailable)
    """
    if redis is None:
        logger.warning("cache_manager_using_in_memory_fallback")
    return CacheManager(redis, settings.CACHE_DEFAULT_TTL)


def get_action_logger() -> ActionLogger:
    return ActionLogger()


# ============================================================================
# WordPress Dependencies
# ============================================================================

def build_wordpress_sdk(settings: Settings, cache: CacheManager) -> WordPressSdk:
    """
    Build a WordPress SDK from settings.

    Args:
        settings: Application settings
        cache: Cache backing list and item reads

    Returns:
        WordPress SDK (caller owns closing it)
    """
    return WordPressSdk(
        settings.wordpress_base_uri,
        cache,
        namespace=settings.WORDPRESS_API_NAMESPACE,
        token_resolver=lambda: settings.WORDPRESS_API_TOKEN,
        timeout=settings.WORDPRESS_API_TIMEOUT,
        connect_timeout=settings.WORDPRESS_CONNECT_TIMEOUT,
        retry_policy=RetryPolicy(max_retries=settings.WORDPRESS_MAX_RETRIES),
        verify_tls=settings.WORDPRESS_VERIFY_TLS,
        user_agent=settings.WORDPRESS_API_USER_AGENT,
    )


async def get_wordpress_sdk(
    cache: CacheManager = Depends(get_cache_manager),
    settings: Settings = Depends(get_app_settings)
) -> AsyncGenerator[WordPressSdk, None]:
    sdk = build_wordpress_sdk(settings, cache)
    try:
        yield sdk
    finally:
        await sdk.close()


async def get_category_service(
    sdk: WordPressSdk = Depends(get_wordpress_sdk),
    action_logger: ActionLogger = Depends(get_action_logger)
) -> CategoryService:
    return CategoryService(sdk, action_logger)


async def get_tag_service(
    sdk: WordPressSdk = Depends(get_wordpress_sdk),
    action_logger: ActionLogger = Depends(get_action_logger)
) -> TagService:
    return TagService(sdk, action_logger)


# ============================================================================
# LM Studio Dependencies
# ============================================================================

def require_lmstudio_enabled(
    settings: Settings = Depends(get_app_settings)
) -> Settings:
    """
    Guard for every LM Studio route.

    Raises:
        FeatureUnavailableError: When LMSTUDIO_ENABLED is off
    """
    if not settings.LMSTUDIO_ENABLED:
        raise FeatureUnavailableError(
            "LM Studio integration is disabled.",
            context={"feature": "lmstudio", "flag": "LMSTUDIO_ENABLED"},
            service="lmstudio",
        )
    return settings


def build_lmstudio_sdk(settings: Settings, action_logger: ActionLogger) -> LmStudioSdk:
    """
    Build an LM Studio SDK from settings.

    Raises:
        ValidationError: When the base URL host is not allowed
    """
    return LmStudioSdk(
        settings.LM_STUDIO_BASE_URL,
        api_key=settings.LM_STUDIO_API_KEY,
        timeout=settings.LM_STUDIO_TIMEOUT,
        connect_timeout=settings.LM_STUDIO_CONNECT_TIMEOUT,
        max_retries=settings.LM_STUDIO_MAX_RETRIES,
        retry_delay=settings.LM_STUDIO_RETRY_DELAY_MS / 1000,
        verify_tls=settings.LM_STUDIO_VERIFY_TLS,
        allowed_hosts=settings.get_lmstudio_allowed_hosts(),
        enable_images=settings.LM_STUDIO_ENABLE_IMAGES,
        enable_audio=settings.LM_STUDIO_ENABLE_AUDIO,
        default_model=settings.LM_STUDIO_DEFAULT_MODEL,
        default_embedding_model=settings.LM_STUDIO_DEFAULT_EMBEDDING_MODEL,
        action_logger=action_logger,
        log_channel=settings.LM_STUDIO_LOG_CHANNEL,
    )


async def get_lmstudio_sdk(
    settings: Settings = Depends(require_lmstudio_enabled),
    action_logger: ActionLogger = Depends(get_action_logger)
) -> AsyncGenerator[LmStudioSdk, None]:
    sdk = build_lmstudio_sdk(settings, action_logger)
    try:
        yield sdk
    finally:
        await sdk.close()


def get_lmstudio_stream_sdk(
    settings: Settings = Depends(require_lmstudio_enabled),
    action_logger: ActionLogger = Depends(get_action_logger)
) -> LmStudioSdk:
    """
    SDK for streaming routes.

    Not a yield dependency: the response body outlives the handler, so the
    stream generator closes the client itself.
    """
    return build_lmstudio_sdk(settings, action_logger)
