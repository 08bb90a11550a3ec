"""Shared test fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.parsers.coingecko.client import CoinGeckoClient
from src.parsers.oneinch.client import OneInchClient
from src.parsers.rate_limiter import RateLimiter
from src.parsers.request_cache import ResponseCache
from src.portfolio.logo_cache import TokenLogoCache

WALLET = "0xc18360217d8f7ab5e7c516566761ea12ce7f9d72"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def mock_response(status_code: int = 200, body: Any = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body if body is not None else {}
    return resp


def holdings_payload(chain_id: int = 1) -> dict[str, Any]:
    """Holdings for one chain: WETH, USDC and a zero-value dust row."""
    return {
        "result": [
            {
                "chain_id": chain_id,
                "contract_address": WETH,
                "symbol": "WETH",
                "name": "Wrapped Ether",
                "decimals": 18,
                "amount": 1.5,
                "price_to_usd": 2000.0,
                "value_usd": 3000.0,
                "abs_profit_usd": 150.0,
                "roi": 0.05,
            },
            {
                "chain_id": chain_id,
                "contract_address": USDC,
                "symbol": "",
                "name": "",
                "decimals": 0,
                "amount": 1000.0,
                "price_to_usd": 1.0,
                "value_usd": 1000.0,
                "abs_profit_usd": 0.0,
                "roi": 0.0,
            },
            {
                "chain_id": chain_id,
                "contract_address": "0x0000000000000000000000000000000000000bad",
                "symbol": "DUST",
                "amount": 0.0,
                "price_to_usd": 0.0,
                "value_usd": 0.0,
            },
        ]
    }


def token_list_payload() -> dict[str, Any]:
    return {
        "tokens": {
            USDC: {"name": "USD Coin", "symbol": "USDC", "decimals": 6, "logoURI": ""},
        }
    }


@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch) -> None:
    monkeypatch.setattr("src.parsers.oneinch.client.RETRY_DELAYS", [0.0, 0.0])
    monkeypatch.setattr("src.parsers.coingecko.client.RETRY_DELAYS", [0.0])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def oneinch(clock: FakeClock) -> OneInchClient:
    """Configured client with a mocked transport and fake-clock cache."""
    client = OneInchClient(
        "test-key",
        cache=ResponseCache(ttl_sec=300.0, clock=clock),
        rate_limiter=RateLimiter(1000.0),
    )
    client._client = AsyncMock()
    return client


@pytest.fixture
def coingecko() -> CoinGeckoClient:
    client = CoinGeckoClient(rate_limiter=RateLimiter(1000.0))
    client._client = AsyncMock()
    client._client.get = AsyncMock(return_value=mock_response(404))
    return client


@pytest.fixture
def logo_cache(coingecko: CoinGeckoClient) -> TokenLogoCache:
    return TokenLogoCache(coingecko)


@pytest.fixture
def make_response():
    return mock_response


@pytest.fixture
def holdings():
    return holdings_payload


@pytest.fixture
def token_list() -> dict[str, Any]:
    return token_list_payload()
