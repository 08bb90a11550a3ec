"""Tests for the token logo cache (memory + Redis tiers)."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from src.portfolio.logo_cache import (
    REDIS_KEY,
    TokenLogoCache,
    logo_cache_key,
    placeholder_logo,
)

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
WETH_LOGO = "https://assets.coingecko.com/coins/images/2518/small/weth.png"


def _redis(stored: dict[str, str] | None = None) -> AsyncMock:
    redis = AsyncMock()
    redis.hgetall = AsyncMock(return_value=stored or {})
    return redis


class TestHelpers:
    def test_key_lowercases_address(self) -> None:
        assert logo_cache_key(1, WETH) == f"1:{WETH.lower()}"

    def test_placeholder(self) -> None:
        assert placeholder_logo("weth").endswith("text=W")
        assert placeholder_logo("").endswith("text=%3F")


class TestGetTokenLogo:
    @pytest.mark.asyncio
    async def test_contract_lookup_cached(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"id": "weth", "image": {"small": WETH_LOGO}})
        )
        cache = TokenLogoCache(coingecko)

        assert await cache.get_token_logo(WETH, 1, "WETH") == WETH_LOGO
        assert await cache.get_token_logo(WETH.lower(), 1, "WETH") == WETH_LOGO
        assert coingecko._client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_symbol_search(self, coingecko, make_response) -> None:
        async def _get(path, params=None):
            if path == "/search":
                return make_response(200, {"coins": [{"symbol": "weth", "thumb": "https://img/thumb.png"}]})
            return make_response(404)

        coingecko._client.get = AsyncMock(side_effect=_get)
        cache = TokenLogoCache(coingecko)

        assert await cache.get_token_logo(WETH, 1, "WETH") == "https://img/thumb.png"

    @pytest.mark.asyncio
    async def test_unmapped_chain_uses_search_only(self, coingecko) -> None:
        cache = TokenLogoCache(coingecko)

        url = await cache.get_token_logo(WETH, 999999, "WETH")

        assert url == placeholder_logo("WETH")
        paths = [c.args[0] for c in coingecko._client.get.call_args_list]
        assert paths == ["/search"]

    @pytest.mark.asyncio
    async def test_provider_errors_never_raise(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(return_value=make_response(429))
        cache = TokenLogoCache(coingecko)

        assert await cache.get_token_logo(WETH, 1, "WETH") == placeholder_logo("WETH")

    @pytest.mark.asyncio
    async def test_memory_entry_expires(self, coingecko, clock, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"image": {"small": WETH_LOGO}})
        )
        cache = TokenLogoCache(coingecko, ttl_sec=100.0, clock=clock)

        await cache.get_token_logo(WETH, 1, "WETH")
        clock.advance(101.0)
        await cache.get_token_logo(WETH, 1, "WETH")

        assert coingecko._client.get.await_count == 2


class TestLookupDeadline:
    @pytest.mark.asyncio
    async def test_slow_lookup_returns_placeholder_then_caches(self, coingecko, make_response) -> None:
        gate = asyncio.Event()

        async def _slow(path, params=None):
            await gate.wait()
            return make_response(200, {"image": {"small": WETH_LOGO}})

        coingecko._client.get = AsyncMock(side_effect=_slow)
        cache = TokenLogoCache(coingecko)

        assert await cache.get_token_logo_within(WETH, 1, "WETH", timeout=0.01) == placeholder_logo("WETH")

        # Lookup keeps running past the deadline and fills the cache
        gate.set()
        await asyncio.sleep(0.01)
        assert await cache.get_token_logo_within(WETH, 1, "WETH", timeout=0.01) == WETH_LOGO
        assert coingecko._client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_lookup(self, coingecko, make_response) -> None:
        gate = asyncio.Event()

        async def _slow(path, params=None):
            await gate.wait()
            return make_response(200, {"image": {"small": WETH_LOGO}})

        coingecko._client.get = AsyncMock(side_effect=_slow)
        cache = TokenLogoCache(coingecko)

        first = asyncio.create_task(cache.get_token_logo_within(WETH, 1, "WETH", timeout=1.0))
        second = asyncio.create_task(cache.get_token_logo_within(WETH.lower(), 1, "WETH", timeout=1.0))
        await asyncio.sleep(0.01)
        gate.set()

        assert await asyncio.gather(first, second) == [WETH_LOGO, WETH_LOGO]
        assert coingecko._client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_fast_lookup_within_deadline(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"image": {"small": WETH_LOGO}})
        )
        cache = TokenLogoCache(coingecko)

        assert await cache.get_token_logo_within(WETH, 1, "WETH", timeout=1.0) == WETH_LOGO



class TestPersistence:
    @pytest.mark.asyncio
    async def test_load_keeps_fresh_drops_stale(self, coingecko, clock) -> None:
        fresh_key = logo_cache_key(1, WETH)
        redis = _redis(
            {
                fresh_key: json.dumps({"url": WETH_LOGO, "timestamp": clock.now - 10}),
                "1:0xold": json.dumps({"url": "https://old", "timestamp": clock.now - 90_000}),
                "1:0xbad": "not json",
            }
        )
        cache = TokenLogoCache(coingecko, redis=redis, clock=clock)

        loaded = await cache.load_persisted()

        assert loaded == 1
        redis.hdel.assert_awaited_once()
        assert set(redis.hdel.call_args.args[1:]) == {"1:0xold", "1:0xbad"}

        # Preloaded entry answers without touching CoinGecko
        assert await cache.get_token_logo(WETH, 1, "WETH") == WETH_LOGO
        coingecko._client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_without_redis(self, coingecko) -> None:
        assert await TokenLogoCache(coingecko).load_persisted() == 0

    @pytest.mark.asyncio
    async def test_redis_failure_is_tolerated(self, coingecko) -> None:
        redis = AsyncMock()
        redis.hgetall = AsyncMock(side_effect=ConnectionError("redis down"))
        cache = TokenLogoCache(coingecko, redis=redis)

        assert await cache.load_persisted() == 0

    @pytest.mark.asyncio
    async def test_preload_persists_batch(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"image": {"small": WETH_LOGO}})
        )
        redis = _redis()
        cache = TokenLogoCache(coingecko, redis=redis)
        tokens = [(f"0x{i:040x}", 1, f"T{i}") for i in range(7)]

        loaded = await cache.preload_common_tokens(tokens)

        assert loaded == 7
        redis.hset.assert_awaited_once()
        assert redis.hset.call_args.args[0] == REDIS_KEY
        assert len(redis.hset.call_args.kwargs["mapping"]) == 7
        assert cache.get_cache_stats()["preload_cache"] == {"total": 7, "valid": 7, "expired": 0}

        # Already cached: second preload loads nothing new
        assert await cache.preload_common_tokens(tokens) == 0

    @pytest.mark.asyncio
    async def test_clear_cache_deletes_redis_key(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"image": {"small": WETH_LOGO}})
        )
        redis = _redis()
        cache = TokenLogoCache(coingecko, redis=redis)
        await cache.get_token_logo(WETH, 1, "WETH")

        await cache.clear_cache()

        redis.delete.assert_awaited_once_with(REDIS_KEY)
        assert cache.get_cache_stats()["runtime_cache"]["total"] == 0
