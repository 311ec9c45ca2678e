"""Configuration management for the URL shortener service.

Settings are read from environment variables (and an optional ``.env`` file)
through Pydantic BaseSettings and cached after the first access.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache │
    │ (lru_cache) │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
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
    from shortener.config import get_settings

**Step 2 — Read values**::
    settings = get_settings()
    print(settings.REDIS_URL, settings.BASE_URL)

**Step 3 — Override through the environment**::
    BASE_URL=https://sho.rt REDIS_URL=redis://cache:6379/0 shortener
    CORS_ORIGINS='["https://app.example.com"]' shortener

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables override defaults automatically.
- List values (``CORS_ORIGINS``) are given as JSON arrays.
- Empty environment values are ignored, so ``BASE_URL=`` keeps the default.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["DEFAULT_BASE_URL", "Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "http://localhost:8080"


class Settings(BaseSettings):
    APP_NAME: str = "url-shortener"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    BASE_URL: str = DEFAULT_BASE_URL

    # Mapping store (Redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    KEY_PREFIX: str = "short:"
    STORE_TIMEOUT_SECONDS: float = 2.0

    # Code allocation
    SHORT_CODE_LENGTH: int = 6
    MAX_ALLOCATION_ATTEMPTS: int = 5

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    CORS_MAX_AGE_SECONDS: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_ignore_empty=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
