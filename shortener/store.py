"""Mapping store: the atomic, TTL-capable table behind short codes.

The store is the only place uniqueness is enforced. ``try_create`` maps to
a single Redis ``SET key value NX [EX ttl]``, so of any number of concurrent
callers using the same key at most one observes ``True``. Nothing above this
layer takes locks or pre-checks with a read.

Flow Diagram — try_create()
===========================
::
    ┌─────────────┐
    │ try_create( │
    │ key, url,   │
    │ ttl)        │
    └──────┬──────┘
           ▼
    ┌──────────────────┐
    │ SET key url NX   │
    │ [EX ttl]         │
    │ (time-boxed)     │
    └──────┬───────────┘
    REPLY? │
    ┌──────┴─────┬──────────────┐
    │ OK         │ nil          │ error / timeout
    ▼            ▼              ▼
┌─────────┐  ┌──────────┐  ┌────────────┐
│ True    │  │ False    │  │ StoreError │
│ created │  │ collision│  │            │
└─────────┘  └──────────┘  └────────────┘

Key Behaviours
===============
- Keys are ``KEY_PREFIX + code`` (``short:abc123`` by default).
- ``ttl`` of ``None`` or ``0`` stores the mapping without expiry; Redis
  removes expiring keys itself, so ``lookup`` never sees them again.
- A missing key is ``MappingNotFoundError``; every Redis failure, including
  a round-trip exceeding the configured timeout, is ``StoreError``.

Classes:
    MappingStore:  Abstract contract shared by all store implementations.
    RedisMappingStore:  Redis implementation used in production.
"""

import asyncio
import functools
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortener.exceptions import MappingNotFoundError, StoreError

__all__ = ["MappingStore", "RedisMappingStore"]

DEFAULT_KEY_PREFIX = "short:"
DEFAULT_TIMEOUT_SECONDS = 2.0

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class MappingStore(ABC):
    """Interface for short code mapping stores.

    Methods:
        try_create(key: str, value: str, ttl: int | None) -> bool:
            Atomically store ``value`` under ``key`` unless the key exists.
            Returns False on collision. Raises StoreError on store failure.

        lookup(key: str) -> str:
            Return the value under ``key``.
            Raises MappingNotFoundError when absent or expired.
            Raises StoreError on store failure.

        ping() -> None:
            Liveness check. Raises StoreError when unreachable.

    Subclassing:
        Implementations must make ``try_create`` atomic across processes,
        not just within one event loop.
    """

    def __init__(self, prefix: str = DEFAULT_KEY_PREFIX):
        self.prefix = prefix

    def key_for(self, code: str) -> str:
        return f"{self.prefix}{code}"

    @abstractmethod
    async def try_create(self, key: str, value: str, ttl: int | None = None) -> bool:
        pass

    @abstractmethod
    async def lookup(self, key: str) -> str:
        pass

    @abstractmethod
    async def ping(self) -> None:
        pass


def handle_redis_errors(method: F) -> F:
    """Time-box a Redis round-trip and translate its failures to StoreError.

    Example:
        >>> @handle_redis_errors
        ... async def ping(self):
        ...     await self.redis.ping()
    """

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            async with asyncio.timeout(self.timeout):
                return await method(self, *args, **kwargs)
        except RedisError as exc:
            raise StoreError(f"Redis {method.__name__} failed: {exc}") from exc
        except TimeoutError as exc:
            raise StoreError(f"Redis {method.__name__} timed out after {self.timeout}s") from exc

    return wrapper


class RedisMappingStore(MappingStore):
    """Redis-backed mapping store.

    Attributes:
        redis (redis.Redis):
            Shared asyncio client. Must be created with ``decode_responses=True``.
        prefix (str):
            Namespace prepended to every short code.
        timeout (float):
            Upper bound in seconds for one round-trip.

    Example:
        >>> store = RedisMappingStore(create_redis_client(settings))
        >>> await store.try_create(store.key_for("abc123"), "https://example.com", ttl=60)
        True
        >>> await store.try_create(store.key_for("abc123"), "https://other.example")
        False
        >>> await store.lookup(store.key_for("abc123"))
        'https://example.com'
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = DEFAULT_KEY_PREFIX,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        super().__init__(prefix)
        self.redis = client
        self.timeout = timeout

    @handle_redis_errors
    async def try_create(self, key: str, value: str, ttl: int | None = None) -> bool:
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must be non-negative, got {ttl!r}")
        # SET NX returns None (not False) when the key already exists.
        created = await self.redis.set(key, value, nx=True, ex=ttl or None)
        return bool(created)

    @handle_redis_errors
    async def lookup(self, key: str) -> str:
        value = await self.redis.get(key)
        if value is None:
            raise MappingNotFoundError()
        return value

    @handle_redis_errors
    async def ping(self) -> None:
        await self.redis.ping()
