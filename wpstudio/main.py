# File: wpstudio/main.py
# Purpose: FastAPI application entry point wiring the WordPress and LM Studio integrations
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from redis.exceptions import RedisError
import structlog

from wpstudio.config import Settings, get_settings
from wpstudio.core.exceptions import ExternalServiceError
from wpstudio.dependencies import get_app_settings
from wpstudio.infrastructure.logging.setup import setup_logging
from wpstudio.infrastructure.cache.redis_client import init_redis, close_redis
from wpstudio.middleware.request_id import RequestIDMiddleware
from wpstudio.middleware.error_handler import (
    external_service_exception_handler,
    global_exception_handler,
    validation_exception_handler,
    http_exception_handler
)

# Import API routers
from wpstudio.api.v1 import lmstudio, wordpress

logger = structlog.get_logger(__name__)

VERSION = "1.0.0"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings override (tests); defaults to the cached settings

    Returns:
        Configured application
    """
    explicit_settings = settings is not None
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        setup_logging(
            log_level=settings.LOG_LEVEL,
            log_dir=settings.LOG_DIR,
            app_name=settings.APP_NAME,
            extra_channels=[settings.LM_STUDIO_LOG_CHANNEL]
        )
        logger.info(
            "application_starting",
            env=settings.ENV,
            debug=settings.DEBUG,
            lmstudio_enabled=settings.LMSTUDIO_ENABLED,
            wordpress_base_uri=settings.wordpress_base_uri
        )

        # Redis is optional - the cache falls back to process memory
        try:
            await init_redis(settings)
            logger.info("redis_ready")
        except (RedisError, OSError) as redis_error:
            logger.warning(
                "redis_initialization_failed_using_fallback",
                error=str(redis_error)
            )

        logger.info("application_started")

        yield

        logger.info("application_shutting_down")
        await close_redis()
        logger.info("application_shutdown_complete")

    app = FastAPI(
        title=settings.APP_NAME,
        description="WordPress and LM Studio integration gateway",
        version=VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    if explicit_settings:
        app.dependency_overrides[get_app_settings] = lambda: settings

    app.add_middleware(RequestIDMiddleware)

    # Register exception handlers
    app.add_exception_handler(ExternalServiceError, external_service_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(lmstudio.router, prefix=settings.API_V1_PREFIX)
    app.include_router(wordpress.router, prefix=settings.API_V1_PREFIX)

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint"""
        return {
            "status": "ok",
            "service": settings.APP_NAME,
            "version": VERSION,
            "environment": settings.ENV,
            "lmstudio_enabled": settings.LMSTUDIO_ENABLED
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wpstudio.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().DEBUG,
        log_level=get_settings().LOG_LEVEL.lower()
    )
