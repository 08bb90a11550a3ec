"""Token page data: spot price, the wallet's holding and P/L, and history analytics.

Price and transaction analytics are fetched concurrently and degrade to None
independently. Holding and P/L come from the already loaded portfolio chains,
no extra request is made for them.
"""

import asyncio

from loguru import logger

from src.parsers.oneinch.client import OneInchClient
from src.portfolio.chains import get_chain_name
from src.portfolio.models import ChainPortfolio, HistoryMetrics, TokenHolding, TokenPageData
from src.portfolio.transactions import TransactionAnalyticsService


def find_token_holding(
    chains: list[ChainPortfolio],
    chain_id: int,
    token_address: str,
) -> TokenHolding | None:
    """Holding for ``token_address`` on ``chain_id`` (address match is case-insensitive)."""
    address = token_address.lower()
    for chain in chains:
        if chain.chain_id != chain_id:
            continue
        for token in chain.tokens:
            if token.address.lower() == address:
                return token
    return None


def extract_history_metrics(
    chains: list[ChainPortfolio],
    chain_id: int,
    token_address: str,
) -> HistoryMetrics | None:
    holding = find_token_holding(chains, chain_id, token_address)
    if holding is None:
        return None
    return HistoryMetrics(
        index=f"{chain_id}_{token_address}",
        profit_abs_usd=holding.profit_loss,
        roi=holding.roi,
    )


class TokenDataService:
    def __init__(self, client: OneInchClient, analytics: TransactionAnalyticsService) -> None:
        self._client = client
        self._analytics = analytics

    async def fetch_token_price(self, chain_id: int, token_address: str) -> float | None:
        """USD spot price, or None when unknown or the request fails."""
        try:
            prices = await self._client.get_token_prices(chain_id, [token_address])
        except Exception as e:
            logger.warning(f"[TOKEN] Price fetch failed for {token_address} on chain {chain_id}: {e}")
            return None
        return prices.get(token_address.lower())

    async def fetch_comprehensive_token_data(
        self,
        chain_id: int,
        token_address: str,
        wallet_address: str | None,
        chains: list[ChainPortfolio],
    ) -> TokenPageData:
        price, analytics = await asyncio.gather(
            self.fetch_token_price(chain_id, token_address),
            self._analytics.fetch_transaction_analytics(chain_id, wallet_address or "", token_address),
            return_exceptions=True,
        )
        for result in (price, analytics):
            if isinstance(result, asyncio.CancelledError):
                raise result
        if isinstance(price, BaseException):
            logger.warning(f"[TOKEN] Price unavailable for {token_address}: {price}")
            price = None
        if isinstance(analytics, BaseException):
            logger.warning(f"[TOKEN] Transaction analytics unavailable for {token_address}: {analytics}")
            analytics = None

        return TokenPageData(
            chain_id=chain_id,
            chain_name=get_chain_name(chain_id),
            token_address=token_address,
            wallet_address=wallet_address or None,
            price=price,
            holding=find_token_holding(chains, chain_id, token_address),
            history_metrics=extract_history_metrics(chains, chain_id, token_address),
            transaction_analytics=analytics,
        )
