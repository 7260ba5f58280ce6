"""
Provider settings using Pydantic.

Provides environment-based configuration loading with KOYEB_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Provider settings."""

    # API
    token: str | None = None
    api_url: str = "https://app.koyeb.com"

    # Debug
    debug: bool = False

    # HTTP client settings
    http_timeout: float = 30.0

    # Listing page size used by the identifier mapper (API maximum is 100)
    page_size: int = 100

    # Status waiter
    wait_poll_interval: float = 5.0
    wait_timeout: float = 300.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "KOYEB_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
