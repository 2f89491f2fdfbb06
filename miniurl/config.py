"""Configuration management for the miniurl service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from miniurl.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (and an optional ``.env`` file) override defaults.
- Short code and cache defaults match the production deployment:
  8-character codes, 5 allocation attempts, 10,000 cached entries for 1 hour.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "miniurl"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://miniurl:miniurl@db:5432/miniurl"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Short code allocation
    SHORT_CODE_LENGTH: int = 8
    MAX_ALLOCATION_ATTEMPTS: int = 5
    MAX_URL_LENGTH: int = 2048

    # Redirect cache (in-process, LRU + expire-after-write)
    CACHE_MAX_ENTRIES: int = 10_000
    CACHE_TTL_SECONDS: int = 3600

    # Click analytics
    ANALYTICS_ENABLED: bool = True
    RECENT_CLICKS_LIMIT: int = 10
    TOP_REFERRERS_LIMIT: int = 10

    # Admission control
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    SHORTEN_RATE_LIMIT: str = "20/minute"
    REDIRECT_RATE_LIMIT: str = "100/minute"

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
