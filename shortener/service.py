"""URL Shortener Service Layer - allocation policy and resolution.

This module ties the code allocator to the mapping store. It owns the
collision policy for creation and the read path for redirects.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────────┐
    │                 Service Layer                    │
    │  ┌────────────────────┐  ┌────────────────────┐  │
    │  │ ShorteningService  │  │ Code Allocator     │  │
    │  │                    │  │                    │  │
    │  │ • create_short_url │─▶│ • validate custom  │  │
    │  │ • resolve          │  │ • generate random  │  │
    │  └─────────┬──────────┘  └────────────────────┘  │
    └────────────┼─────────────────────────────────────┘
                 ▼
    ┌────────────────────┐
    │  Mapping Store     │
    │  SET NX EX / GET   │
    │  (Redis)           │
    └────────────────────┘

URL Creation Flow
-----------------
::
    ┌─────────────┐
    │  POST /     │
    └──────┬──────┘
           ▼
    CUSTOM CODE?
    ┌──────┴──────────────────┐
    │ YES                     │ NO
    ▼                         ▼
┌──────────────┐      ┌───────────────────┐
│ try_create   │      │ attempt 1..5:     │
│ once         │      │  fresh code       │
└──────┬───────┘      │  try_create       │
  False│ True         │  True → return    │
  ▼    ▼              │  False → next     │
 409  201             └────────┬──────────┘
                      exhausted│
                               ▼
                              500

Key Behaviours
===============
- Uniqueness comes only from the store's atomic create-if-absent; there is
  no existence pre-check.
- A generated code that collides is discarded, never retried.
- A custom code that collides is reported as taken; there is no fallback to
  a generated code.
- ``StoreError`` and ``EntropyError`` are not retried here.
- Resolution performs one lookup and has no side effects.
"""

import time
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from shortener.allocator import allocate
from shortener.config import DEFAULT_BASE_URL
from shortener.enums import RequestStatus
from shortener.exceptions import (
    AllocationExhaustedError,
    CodeTakenError,
    MappingNotFoundError,
    ShortenerError,
)
from shortener.models import ShortURL
from shortener.schemas import ShortenRequest

if TYPE_CHECKING:
    from shortener.dependencies import RequestContext

__all__ = ["ShorteningService", "build_short_url"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

SHORTEN_REQUESTS_TOTAL = Counter(
    "url_shortener_shorten_requests_total",
    "Short URL creation attempts by outcome",
    ["status", "origin"],
)
CODE_COLLISIONS_TOTAL = Counter(
    "url_shortener_code_collisions_total",
    "try_create calls that found the key already present",
    ["origin"],
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "url_shortener_resolve_requests_total",
    "Short code resolutions by outcome",
    ["status"],
)
SHORTEN_DURATION = Histogram(
    "url_shortener_shorten_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

ORIGIN_CUSTOM = "custom"
ORIGIN_GENERATED = "generated"


def build_short_url(base_url: str, code: str) -> str:
    base_url = base_url.rstrip("/") or DEFAULT_BASE_URL
    return f"{base_url}/{code}"


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class ShorteningService:
    """Create and resolve short URL mappings.

    Example:
        >>> service = ShorteningService.from_context(ctx)
        >>> short = await service.create_short_url(ShortenRequest(url="https://example.com"))
        >>> await service.resolve(short.code)
        'https://example.com'
    """

    def __init__(self, ctx: "RequestContext"):
        self._store = ctx.store
        self._logger = ctx.logger
        self._settings = ctx.settings

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "ShorteningService":
        return cls(ctx)

    @property
    def max_attempts(self) -> int:
        return self._settings.MAX_ALLOCATION_ATTEMPTS

    async def create_short_url(self, request: ShortenRequest) -> ShortURL:
        """Store ``request.url`` under a custom or generated short code.

        Args:
            request: Validated creation request.

        Returns:
            ShortURL: The mapping that was created.

        Raises:
            InvalidCodeError: Custom code is malformed.
            CodeTakenError: Custom code already has a live mapping.
            AllocationExhaustedError: Every generated code collided.
            StoreError: The mapping store failed.
            EntropyError: The secure random source failed.
        """
        origin = ORIGIN_CUSTOM if request.custom_code else ORIGIN_GENERATED
        ttl = request.ttl or None
        start_time = time.perf_counter()

        try:
            if request.custom_code:
                short_url = await self._create_with_custom_code(request.custom_code, request.url, ttl)
            else:
                short_url = await self._create_with_generated_code(request.url, ttl)
        except CodeTakenError:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT, origin=origin).inc()
            raise
        except AllocationExhaustedError:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.EXHAUSTED, origin=origin).inc()
            raise
        except ShortenerError as exc:
            SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, origin=origin).inc()
            self._logger.error(f"Short URL creation failed: {exc}")
            raise
        finally:
            SHORTEN_DURATION.observe(time.perf_counter() - start_time)

        SHORTEN_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, origin=origin).inc()
        self._logger.info(f"Short URL created: {short_url.code} -> {short_url.target} (ttl={ttl})")
        return short_url

    async def resolve(self, code: str) -> str:
        """Return the destination for ``code``.

        The code is not validated; a malformed code is simply not found.

        Raises:
            MappingNotFoundError: No live mapping for ``code``.
            StoreError: The mapping store failed.
        """
        try:
            target = await self._store.lookup(self._store.key_for(code))
        except MappingNotFoundError:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.debug(f"Short code not found: {code}")
            raise
        except ShortenerError as exc:
            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Lookup failed for {code}: {exc}")
            raise

        RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        return target

    async def _create_with_custom_code(self, custom_code: str, target: str, ttl: int | None) -> ShortURL:
        code = allocate(custom_code)
        if not await self._store.try_create(self._store.key_for(code), target, ttl):
            CODE_COLLISIONS_TOTAL.labels(origin=ORIGIN_CUSTOM).inc()
            self._logger.warning(f"Custom code already taken: {code}")
            raise CodeTakenError()
        return ShortURL(code=code, target=target, ttl=ttl)

    async def _create_with_generated_code(self, target: str, ttl: int | None) -> ShortURL:
        for attempt in range(1, self.max_attempts + 1):
            code = allocate(length=self._settings.SHORT_CODE_LENGTH)
            if await self._store.try_create(self._store.key_for(code), target, ttl):
                return ShortURL(code=code, target=target, ttl=ttl)
            CODE_COLLISIONS_TOTAL.labels(origin=ORIGIN_GENERATED).inc()
            self._logger.warning(f"Generated code collision on attempt {attempt}/{self.max_attempts}: {code}")

        self._logger.error(f"Code allocation exhausted after {self.max_attempts} attempts")
        raise AllocationExhaustedError()
