"""Unit tests for the shortening service: collision policy and resolution."""

import asyncio
from unittest.mock import patch

import pytest

from shortener.config import Settings
from shortener.exceptions import (
    AllocationExhaustedError,
    CodeTakenError,
    EntropyError,
    MappingNotFoundError,
    StoreError,
)
from shortener.schemas import ShortenRequest
from shortener.service import ShorteningService, build_short_url


def try_create_calls(store) -> list[str]:
    return [key for op, key in store.calls if op == "try_create"]


# ============================================================================
# GENERATED CODES
# ============================================================================


class TestGeneratedCodes:
    @pytest.mark.asyncio
    async def test_creates_mapping_with_generated_code(self, service, store) -> None:
        short_url = await service.create_short_url(ShortenRequest(url="https://example.com"))

        assert len(short_url.code) == 6
        assert short_url.target == "https://example.com"
        assert short_url.ttl is None
        assert await service.resolve(short_url.code) == "https://example.com"

    @pytest.mark.asyncio
    async def test_collision_retries_with_new_code(self, service, store) -> None:
        store.data["short:taken1"] = ("https://existing.example", None)
        store.data["short:taken2"] = ("https://existing.example", None)

        with patch("shortener.service.allocate", side_effect=["taken1", "taken2", "fresh1"]):
            short_url = await service.create_short_url(ShortenRequest(url="https://example.com"))

        assert short_url.code == "fresh1"
        assert try_create_calls(store) == ["short:taken1", "short:taken2", "short:fresh1"]
        assert store.data["short:taken1"][0] == "https://existing.example"

    @pytest.mark.asyncio
    async def test_gives_up_after_five_attempts(self, service, store, settings) -> None:
        codes = [f"dup{i}" for i in range(settings.MAX_ALLOCATION_ATTEMPTS)]
        for code in codes:
            store.data[f"short:{code}"] = ("https://existing.example", None)

        with patch("shortener.service.allocate", side_effect=codes + ["never"]):
            with pytest.raises(AllocationExhaustedError) as exc_info:
                await service.create_short_url(ShortenRequest(url="https://example.com"))

        assert exc_info.value.status_code == 500
        assert len(try_create_calls(store)) == 5
        assert "short:never" not in store.data

    @pytest.mark.asyncio
    async def test_store_error_is_not_retried(self, service, store) -> None:
        store.error = StoreError("connection refused")

        with pytest.raises(StoreError):
            await service.create_short_url(ShortenRequest(url="https://example.com"))

        assert len(try_create_calls(store)) == 1

    @pytest.mark.asyncio
    async def test_entropy_error_aborts_attempt(self, service, store) -> None:
        with patch("shortener.service.allocate", side_effect=EntropyError("no entropy")):
            with pytest.raises(EntropyError):
                await service.create_short_url(ShortenRequest(url="https://example.com"))

        assert try_create_calls(store) == []


# ============================================================================
# CUSTOM CODES
# ============================================================================


class TestCustomCodes:
    @pytest.mark.asyncio
    async def test_creates_mapping_with_custom_code(self, service, store) -> None:
        request = ShortenRequest(url="https://example.com", custom_code="has-dash_ok")
        short_url = await service.create_short_url(request)

        assert short_url.code == "has-dash_ok"
        assert store.data["short:has-dash_ok"] == ("https://example.com", None)

    @pytest.mark.asyncio
    async def test_taken_code_is_conflict_without_retry(self, service, store) -> None:
        await service.create_short_url(ShortenRequest(url="https://first.example", custom_code="taken"))
        store.calls.clear()

        with pytest.raises(CodeTakenError) as exc_info:
            await service.create_short_url(ShortenRequest(url="https://second.example", custom_code="taken"))

        assert exc_info.value.status_code == 409
        assert try_create_calls(store) == ["short:taken"]
        assert await service.resolve("taken") == "https://first.example"

    @pytest.mark.asyncio
    async def test_expired_custom_code_can_be_reused(self, service, store) -> None:
        await service.create_short_url(ShortenRequest(url="https://first.example", custom_code="reuse", ttl=1))
        store.advance(2)

        short_url = await service.create_short_url(ShortenRequest(url="https://second.example", custom_code="reuse"))

        assert short_url.code == "reuse"
        assert await service.resolve("reuse") == "https://second.example"


# ============================================================================
# CONCURRENCY
# ============================================================================


class TestConcurrentCreation:
    @pytest.mark.asyncio
    async def test_same_custom_code_has_exactly_one_winner(self, service, store) -> None:
        requests = [ShortenRequest(url=f"https://site{i}.example", custom_code="race") for i in range(10)]

        results = await asyncio.gather(
            *(service.create_short_url(request) for request in requests),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, CodeTakenError)]
        assert len(winners) == 1
        assert len(losers) == 9
        assert await service.resolve("race") == winners[0].target

    @pytest.mark.asyncio
    async def test_concurrent_try_create_same_key(self, store) -> None:
        results = await asyncio.gather(*(store.try_create("short:k", f"v{i}") for i in range(20)))
        assert results.count(True) == 1


# ============================================================================
# TTL AND RESOLUTION
# ============================================================================


class TestResolution:
    @pytest.mark.asyncio
    async def test_ttl_mapping_expires(self, service, store) -> None:
        short_url = await service.create_short_url(ShortenRequest(url="https://example.com", ttl=1))
        assert short_url.ttl == 1
        assert await service.resolve(short_url.code) == "https://example.com"

        store.advance(2)

        with pytest.raises(MappingNotFoundError):
            await service.resolve(short_url.code)

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self, service, store) -> None:
        short_url = await service.create_short_url(ShortenRequest(url="https://example.com", ttl=0))
        assert short_url.ttl is None

        store.advance(10**9)

        assert await service.resolve(short_url.code) == "https://example.com"

    @pytest.mark.asyncio
    async def test_resolve_unknown_code(self, service) -> None:
        with pytest.raises(MappingNotFoundError) as exc_info:
            await service.resolve("nope123")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_resolve_malformed_code_is_just_not_found(self, service, store) -> None:
        with pytest.raises(MappingNotFoundError):
            await service.resolve("x")
        assert store.calls == [("lookup", "short:x")]

    @pytest.mark.asyncio
    async def test_resolve_store_failure_is_not_a_miss(self, service, store) -> None:
        store.error = StoreError("timeout")
        with pytest.raises(StoreError) as exc_info:
            await service.resolve("abc123")
        assert not isinstance(exc_info.value, MappingNotFoundError)


def test_build_short_url() -> None:
    assert build_short_url("http://localhost:8080", "abc123") == "http://localhost:8080/abc123"
    assert build_short_url("https://sho.rt/", "abc123") == "https://sho.rt/abc123"


def test_max_attempts_from_settings(service) -> None:
    assert isinstance(service, ShorteningService)
    assert service.max_attempts == 5


def test_build_short_url_empty_base_falls_back() -> None:
    assert build_short_url("", "abc123") == "http://localhost:8080/abc123"


def test_empty_base_url_env_keeps_default(monkeypatch) -> None:
    monkeypatch.setenv("BASE_URL", "")
    assert Settings().BASE_URL == "http://localhost:8080"
