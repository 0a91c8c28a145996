"""API-specific settings using Pydantic BaseSettings."""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """
    FastAPI application settings.

    Settings can be configured via environment variables with the prefix
    APPEAL_PROSPECT_API_. For example: APPEAL_PROSPECT_API_PORT=8080

    Attributes:
        host: Server bind address
        port: Server bind port
        debug: Enable debug mode (auto-reload, verbose errors)
        allowed_origins: List of allowed CORS origins
        log_requests: Log all requests and responses
        openapi_url: OpenAPI schema URL
        trusted_proxy_count: Number of trusted proxies for X-Forwarded-For parsing
        login_path: Where clients are sent to re-authenticate
        registration_enabled: Expose POST /auth/register
    """

    model_config = SettingsConfigDict(
        env_prefix="APPEAL_PROSPECT_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    allowed_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    log_requests: bool = True
    openapi_url: str = "/openapi.json"

    # Proxy settings for IP extraction
    trusted_proxy_count: int = 0

    login_path: str = "/login"
    registration_enabled: bool = True


@lru_cache
def get_settings() -> APISettings:
    """
    Get cached API settings instance.

    Returns:
        APISettings instance (cached)
    """
    return APISettings()
