# File: wpstudio/config.py
# Purpose: Unified configuration management with pydantic-settings for the external API clients
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal, Optional


class Settings(BaseSettings):
    """
    Application settings with type-safe configuration management.
    Every external integration reads its connection knobs from here.
    """
    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"],
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application Configuration
    APP_NAME: str = "wpstudio"
    ENV: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "./logs"
    API_V1_PREFIX: str = "/api/v1"

    # Redis Configuration
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 50
    CACHE_DEFAULT_TTL: int = 3600

    # Feature flags
    LMSTUDIO_ENABLED: bool = False

    # LM Studio Configuration
    LM_STUDIO_BASE_URL: str = "http://127.0.0.1:1234"
    LM_STUDIO_API_KEY: Optional[str] = None
    LM_STUDIO_TIMEOUT: float = 30.0
    LM_STUDIO_CONNECT_TIMEOUT: float = 10.0
    LM_STUDIO_MAX_RETRIES: int = 2
    LM_STUDIO_RETRY_DELAY_MS: int = 100
    LM_STUDIO_VERIFY_TLS: bool = True
    # Comma separated; empty means any host is accepted
    LM_STUDIO_ALLOWED_HOSTS: str = "127.0.0.1,localhost"
    LM_STUDIO_DEFAULT_MODEL: Optional[str] = None
    LM_STUDIO_DEFAULT_EMBEDDING_MODEL: Optional[str] = None
    LM_STUDIO_ENABLE_AUDIO: bool = False
    LM_STUDIO_ENABLE_IMAGES: bool = False
    LM_STUDIO_ENABLE_STREAMING: bool = True
    LM_STUDIO_LOG_CHANNEL: str = "external"

    # WordPress Configuration
    WP_URL: str = "https://example.com"
    WORDPRESS_API_NAMESPACE: str = "wp/v2"
    WORDPRESS_API_TIMEOUT: float = 10.0
    WORDPRESS_CONNECT_TIMEOUT: float = 5.0
    WORDPRESS_API_USER_AGENT: str = "WpStudioWordPressSdk/1.0"
    WORDPRESS_API_TOKEN: Optional[str] = None
    WORDPRESS_MAX_RETRIES: int = 0
    WORDPRESS_VERIFY_TLS: bool = True

    def get_lmstudio_allowed_hosts(self) -> list[str]:
        """Parse LM_STUDIO_ALLOWED_HOSTS into a list of host names."""
        return [host.strip() for host in self.LM_STUDIO_ALLOWED_HOSTS.split(",") if host.strip()]

    @property
    def wordpress_base_uri(self) -> str:
        """REST root of the WordPress site, always ending in /wp-json/."""
        return self.WP_URL.rstrip("/") + "/wp-json/"

@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.

    Returns:
        Settings instance
    """
    return Settings()
