"""Application wiring tests: startup check, CORS, error rendering."""

from typing import Generator
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from shortener.dependencies import _service_manager
from shortener.exceptions import StartupFailure, StoreError
from shortener.main import app, lifespan


@pytest.fixture
def started_manager(store) -> Generator[AsyncMock, None, None]:
    """Pretend the service manager is initialized with the fake store."""
    redis_client = AsyncMock()
    _service_manager.store = store
    _service_manager.redis = redis_client
    _service_manager._initialized = True
    yield redis_client
    for attr in ("store", "redis", "_initialized"):
        _service_manager.__dict__.pop(attr, None)


@pytest.mark.asyncio
async def test_startup_pings_store(started_manager, store) -> None:
    async with lifespan(app):
        assert ("ping", "") in store.calls
    started_manager.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_startup_aborts_when_store_unreachable(started_manager, store) -> None:
    store.error = StoreError("Connection refused")

    with pytest.raises(StartupFailure) as exc_info:
        async with lifespan(app):
            pytest.fail("application must not start without a store")

    assert isinstance(exc_info.value.__cause__, StoreError)
    started_manager.aclose.assert_awaited_once()
    assert not _service_manager._initialized


@pytest.mark.asyncio
async def test_cors_preflight_allows_configured_origin(client: AsyncClient, settings) -> None:
    origin = settings.CORS_ORIGINS[0]
    response = await client.options(
        "/",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == origin


@pytest.mark.asyncio
async def test_cors_rejects_unknown_origin(client: AsyncClient) -> None:
    response = await client.options(
        "/",
        headers={
            "Origin": "https://evil.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert "access-control-allow-origin" not in response.headers


@pytest.mark.asyncio
async def test_openapi_schema_under_ops_prefix(client: AsyncClient) -> None:
    response = await client.get("/-/openapi.json")
    assert response.status_code == 200
    assert "/" in response.json()["paths"]
