"""Pydantic schemas for request validation and response serialization.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    ├─ url: str (absolute http/https URL)
    ├─ custom_code: str | None (3-20 chars of [A-Za-z0-9_-])
    └─ ttl: int | None (seconds, 0..MAX_TTL_SECONDS, 0/None = never expires)

    ShortenResponse (Output)
    ├─ short_url: str
    └─ code: str

    ErrorResponse (Output)
    └─ error: str

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ store: HealthStatus

Key Behaviours
===============
- URL validation uses the validators library plus an explicit scheme check,
  so ``ftp://`` and scheme-less strings are rejected.
- An empty ``custom_code`` is treated as absent.
- All validation runs before any store round-trip; failures are reported
  as 400 by the handlers in ``shortener.main``.
"""

from urllib.parse import urlsplit

import validators
from pydantic import BaseModel, Field, field_validator

from shortener.allocator import is_valid_code
from shortener.enums import HealthStatus
from shortener.exceptions import INVALID_CODE_MESSAGE

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "ErrorResponse",
    "HealthResponse",
]

ALLOWED_SCHEMES = ("http", "https")
# Redis rejects EX values past its millisecond expiry range
MAX_TTL_SECONDS = 10 * 365 * 24 * 60 * 60


def is_valid_url(value: str) -> bool:
    if urlsplit(value).scheme not in ALLOWED_SCHEMES:
        return False
    return bool(validators.url(value, simple_host=True))


class ShortenRequest(BaseModel):
    url: str
    custom_code: str | None = None
    ttl: int | None = Field(
        None,
        ge=0,
        le=MAX_TTL_SECONDS,
        description="Expiry in seconds; 0 or absent means never.",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v:
            raise ValueError("url is required")
        if not is_valid_url(v):
            raise ValueError("invalid URL format, must start with http:// or https://")
        return v

    @field_validator("custom_code")
    @classmethod
    def validate_custom_code(cls, v: str | None) -> str | None:
        if not v:
            return None
        if not is_valid_code(v):
            raise ValueError(INVALID_CODE_MESSAGE)
        return v


class ShortenResponse(BaseModel):
    short_url: str
    code: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: HealthStatus
    store: HealthStatus
