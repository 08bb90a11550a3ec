"""Tests for token page data assembly."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.parsers.oneinch.exceptions import OneInchHttpError
from src.portfolio.models import (
    ActivityBreakdown,
    ChainPortfolio,
    HistoryMetrics,
    TokenHolding,
    TransactionAnalytics,
)
from src.portfolio.token_details import (
    TokenDataService,
    extract_history_metrics,
    find_token_holding,
)

WALLET = "0xc18360217d8f7ab5e7c516566761ea12ce7f9d72"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


def _chains() -> list[ChainPortfolio]:
    weth = TokenHolding(
        address=WETH,
        symbol="WETH",
        name="Wrapped Ether",
        decimals=18,
        balance=1.5,
        price=2000.0,
        value=3000.0,
        logo="",
        profit_loss=150.0,
        profit_loss_percent=5.0,
        roi=0.05,
    )
    return [
        ChainPortfolio(1, "Ethereum", 3000.0, [weth]),
        ChainPortfolio(137, "Polygon"),
    ]


def _analytics() -> TransactionAnalytics:
    return TransactionAnalytics(
        recent_transactions=[],
        total_transactions=3,
        total_volume=4.5,
        activity_breakdown=ActivityBreakdown(swaps=3),
        timeline_data=[],
    )


def _service(prices=None, analytics=None) -> tuple[TokenDataService, MagicMock, AsyncMock]:
    client = MagicMock()
    client.get_token_prices = AsyncMock(return_value=prices if prices is not None else {})
    history = AsyncMock()
    history.fetch_transaction_analytics = AsyncMock(return_value=analytics)
    return TokenDataService(client, history), client, history


class TestHoldingLookup:
    def test_case_insensitive_match(self) -> None:
        holding = find_token_holding(_chains(), 1, WETH.lower())
        assert holding is not None
        assert holding.symbol == "WETH"

    def test_other_chain_not_matched(self) -> None:
        assert find_token_holding(_chains(), 137, WETH) is None
        assert find_token_holding(_chains(), 10, WETH) is None

    def test_history_metrics_from_holding(self) -> None:
        assert extract_history_metrics(_chains(), 1, WETH) == HistoryMetrics(
            index=f"1_{WETH}",
            profit_abs_usd=150.0,
            roi=0.05,
        )
        assert extract_history_metrics(_chains(), 1, "0xmissing") is None
        assert extract_history_metrics([], 1, WETH) is None


class TestTokenDataService:
    @pytest.mark.asyncio
    async def test_price_lookup_is_case_insensitive(self) -> None:
        service, client, _ = _service(prices={WETH.lower(): 2010.5})

        assert await service.fetch_token_price(1, WETH) == 2010.5
        client.get_token_prices.assert_awaited_once_with(1, [WETH])

    @pytest.mark.asyncio
    async def test_price_failure_is_none(self) -> None:
        service, client, _ = _service()
        client.get_token_prices = AsyncMock(side_effect=OneInchHttpError(500, "price"))

        assert await service.fetch_token_price(1, WETH) is None

    @pytest.mark.asyncio
    async def test_comprehensive(self) -> None:
        service, _, history = _service(prices={WETH.lower(): 2000.0}, analytics=_analytics())

        data = await service.fetch_comprehensive_token_data(1, WETH, WALLET, _chains())

        assert data.chain_name == "Ethereum"
        assert data.wallet_address == WALLET
        assert data.price == 2000.0
        assert data.holding is not None and data.holding.value == 3000.0
        assert data.history_metrics is not None and data.history_metrics.roi == 0.05
        assert data.transaction_analytics is not None
        assert data.transaction_analytics.total_transactions == 3
        history.fetch_transaction_analytics.assert_awaited_once_with(1, WALLET, WETH)

    @pytest.mark.asyncio
    async def test_parts_degrade_independently(self) -> None:
        service, client, history = _service(analytics=_analytics())
        client.get_token_prices = AsyncMock(side_effect=OneInchHttpError(503, "price"))

        data = await service.fetch_comprehensive_token_data(1, WETH, WALLET, _chains())
        assert data.price is None
        assert data.transaction_analytics is not None

        history.fetch_transaction_analytics = AsyncMock(side_effect=RuntimeError("boom"))
        client.get_token_prices = AsyncMock(return_value={WETH.lower(): 1.0})

        data = await service.fetch_comprehensive_token_data(1, WETH, WALLET, _chains())
        assert data.price == 1.0
        assert data.transaction_analytics is None
        assert data.holding is not None

    @pytest.mark.asyncio
    async def test_without_wallet_or_portfolio(self) -> None:
        service, _, history = _service(prices={})

        data = await service.fetch_comprehensive_token_data(1, WETH, "", [])

        assert data.wallet_address is None
        assert data.price is None
        assert data.holding is None
        assert data.history_metrics is None
        assert data.transaction_analytics is None
        history.fetch_transaction_analytics.assert_awaited_once_with(1, "", WETH)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        service, _, history = _service()
        history.fetch_transaction_analytics = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await service.fetch_comprehensive_token_data(1, WETH, WALLET, _chains())
