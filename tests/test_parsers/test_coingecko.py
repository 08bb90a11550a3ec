"""Tests for the CoinGecko logo lookup client."""

from unittest.mock import AsyncMock

import httpx
import pytest

from src.parsers.coingecko.client import CoinGeckoClient, CoinGeckoError
from src.parsers.coingecko.models import CoinGeckoImage, CoinGeckoSearchResult
from src.parsers.rate_limiter import RateLimiter


class TestModels:
    def test_image_preference(self) -> None:
        assert CoinGeckoImage(thumb="t", small="s", large="l").best() == "s"
        assert CoinGeckoImage(thumb="t", large="l").best() == "t"
        assert CoinGeckoImage(large="l").best() == "l"
        assert CoinGeckoImage().best() is None

    def test_find_symbol_case_insensitive_first_match(self) -> None:
        result = CoinGeckoSearchResult(
            coins=[
                {"id": "foo", "symbol": "FOO", "thumb": "a"},
                {"id": "usd-coin", "symbol": "usdc", "thumb": "b"},
                {"id": "usdc-clone", "symbol": "USDC", "thumb": "c"},
            ]
        )
        coin = result.find_symbol("USDC")
        assert coin is not None
        assert coin.id == "usd-coin"
        assert result.find_symbol("nope") is None


class TestCoinGeckoClient:
    @pytest.mark.asyncio
    async def test_coin_by_contract(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(
            return_value=make_response(200, {"id": "weth", "image": {"small": "https://img/weth.png"}})
        )

        coin = await coingecko.get_coin_by_contract("ethereum", "0xABC")

        assert coin is not None
        assert coin.image.best() == "https://img/weth.png"
        assert coingecko._client.get.call_args.args[0] == "/coins/ethereum/contract/0xabc"

    @pytest.mark.asyncio
    async def test_unknown_contract_is_none(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(return_value=make_response(404, {"error": "coin not found"}))
        assert await coingecko.get_coin_by_contract("ethereum", "0xdead") is None

    @pytest.mark.asyncio
    async def test_search_empty_on_error(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(return_value=make_response(500))
        result = await coingecko.search("WETH")
        assert result.coins == []

    @pytest.mark.asyncio
    async def test_rate_limit_retry_then_raise(self, coingecko, make_response) -> None:
        coingecko._client.get = AsyncMock(return_value=make_response(429))

        with pytest.raises(CoinGeckoError, match="429"):
            await coingecko.search("WETH")
        assert coingecko._client.get.await_count == 2

    @pytest.mark.asyncio
    async def test_network_error_raises(self, coingecko) -> None:
        coingecko._client.get = AsyncMock(side_effect=httpx.ConnectError("down"))
        with pytest.raises(CoinGeckoError):
            await coingecko.search("WETH")

    def test_demo_key_header(self) -> None:
        client = CoinGeckoClient(api_key="cg-demo", rate_limiter=RateLimiter(1000.0))
        assert client._client.headers["x-cg-demo-api-key"] == "cg-demo"

        anonymous = CoinGeckoClient(rate_limiter=RateLimiter(1000.0))
        assert "x-cg-demo-api-key" not in anonymous._client.headers
