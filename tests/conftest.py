"""Shared pytest fixtures: an in-memory mapping store and an API client wired to it."""

import asyncio
from typing import AsyncGenerator
from unittest.mock import Mock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.config import Settings, get_settings
from shortener.dependencies import get_mapping_store
from shortener.exceptions import MappingNotFoundError
from shortener.main import app
from shortener.service import ShorteningService
from shortener.store import MappingStore


class FakeMappingStore(MappingStore):
    """In-memory mapping store with a manual clock for expiry.

    ``try_create`` yields to the event loop before doing its check-and-set,
    then performs both without awaiting, so it is atomic among coroutines the
    same way ``SET NX`` is atomic among Redis clients.
    """

    def __init__(self, prefix: str = "short:"):
        super().__init__(prefix)
        self.now = 0.0
        self.data: dict[str, tuple[str, float | None]] = {}
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _live_value(self, key: str) -> str | None:
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.now >= expires_at:
            del self.data[key]
            return None
        return value

    async def try_create(self, key: str, value: str, ttl: int | None = None) -> bool:
        self.calls.append(("try_create", key))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self._live_value(key) is not None:
            return False
        self.data[key] = (value, self.now + ttl if ttl else None)
        return True

    async def lookup(self, key: str) -> str:
        self.calls.append(("lookup", key))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        value = self._live_value(key)
        if value is None:
            raise MappingNotFoundError()
        return value

    async def ping(self) -> None:
        self.calls.append(("ping", ""))
        if self.error is not None:
            raise self.error


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def store() -> FakeMappingStore:
    return FakeMappingStore()


@pytest.fixture
def mock_logger() -> Mock:
    return Mock()


@pytest.fixture
def service(store: FakeMappingStore, mock_logger: Mock, settings: Settings) -> ShorteningService:
    ctx = Mock()
    ctx.store = store
    ctx.logger = mock_logger
    ctx.settings = settings
    return ShorteningService(ctx)


@pytest_asyncio.fixture
async def client(store: FakeMappingStore) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_mapping_store() -> MappingStore:
        return store

    app.dependency_overrides[get_mapping_store] = override_get_mapping_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
