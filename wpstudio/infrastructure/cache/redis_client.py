# File: wpstudio/infrastructure/cache/redis_client.py
# Purpose: Redis connection pool lifecycle shared by every cache consumer
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError
from typing import AsyncGenerator, Optional
import structlog

from wpstudio.config import Settings

logger = structlog.get_logger(__name__)

# One pool per process, created on startup and closed on shutdown
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


def get_redis_pool(settings: Settings) -> ConnectionPool:
    """
    Get or create Redis connection pool.

    Args:
        settings: Application settings

    Returns:
        Redis connection pool
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    _redis_pool = ConnectionPool.from_url(
        settings.REDIS_URL,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        decode_responses=True,
        encoding="utf-8",
    )

    logger.info(
        "redis_pool_created",
        redis_url=settings.REDIS_URL.split("@")[-1],  # Hide credentials
        max_connections=settings.REDIS_MAX_CONNECTIONS
    )

    return _redis_pool


async def get_redis_client(settings: Settings) -> AsyncGenerator[Optional[Redis], None]:
    """
    Dependency yielding the shared Redis client.

    Yields None when Redis was not initialised or is unreachable, in which
    case callers fall back to the in-memory cache.
    """
    global _redis_client

    if _redis_client is not None:
        yield _redis_client
        return

    redis = Redis(connection_pool=get_redis_pool(settings))
    try:
        await redis.ping()
    except (RedisError, OSError) as e:
        logger.warning("redis_connection_error", error=str(e))
        await redis.aclose(close_connection_pool=False)
        yield None
        return

    _redis_client = redis
    yield _redis_client


async def init_redis(settings: Settings) -> None:
    """
    Initialize Redis connection.
    Should be called on application startup.

    Raises:
        RedisError: When the server cannot be reached
    """
    global _redis_client

    redis = Redis(connection_pool=get_redis_pool(settings))
    try:
        await redis.ping()
    except (RedisError, OSError) as e:
        logger.error("redis_init_failed", error=str(e))
        await redis.aclose(close_connection_pool=False)
        raise

    _redis_client = redis
    logger.info("redis_initialized")


async def close_redis() -> None:
    """
    Close Redis connections.
    Should be called on application shutdown.
    """
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose(close_connection_pool=False)
        _redis_client = None

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("redis_connections_closed")
