"""Multi-chain fan-out over the supported chain table.

Every supported chain gets an entry in the result, in table order. A chain
whose fetch raises is replaced by a zero entry; one bad chain never fails
the aggregate.
"""

import asyncio

from loguru import logger

from src.portfolio.chains import SUPPORTED_CHAINS, ChainInfo
from src.portfolio.fetcher import PortfolioFetcher
from src.portfolio.formatting import format_usd_value
from src.portfolio.models import (
    ChainPortfolio,
    MultiChainPortfolio,
    PortfolioSummary,
    TokenHolding,
)


class PortfolioAggregator:
    def __init__(self, fetcher: PortfolioFetcher) -> None:
        self._fetcher = fetcher

    async def _fetch_chain(self, chain: ChainInfo, wallet_address: str) -> tuple[ChainPortfolio, bool]:
        try:
            result = await self._fetcher.get_portfolio_value(chain.id, wallet_address)
        except Exception as e:
            logger.error(f"[PORTFOLIO] Error fetching portfolio for {chain.name}: {e}")
            return ChainPortfolio(chain_id=chain.id, chain_name=chain.name), True
        return (
            ChainPortfolio(
                chain_id=chain.id,
                chain_name=chain.name,
                total_value=result.total_value,
                tokens=result.tokens,
            ),
            result.degraded,
        )

    async def get_multi_chain_portfolio(self, wallet_address: str) -> MultiChainPortfolio:
        results = await asyncio.gather(
            *(self._fetch_chain(chain, wallet_address) for chain in SUPPORTED_CHAINS.values())
        )

        chains = [portfolio for portfolio, _ in results]
        degraded = [portfolio.chain_id for portfolio, failed in results if failed]
        total_value = sum(c.total_value for c in chains)

        if degraded:
            logger.warning(
                f"[PORTFOLIO] {len(degraded)}/{len(chains)} chains degraded for "
                f"{wallet_address}: {degraded}"
            )
        logger.info(
            f"[PORTFOLIO] {wallet_address}: {format_usd_value(total_value)} across "
            f"{sum(1 for c in chains if c.tokens)} chains"
        )

        return MultiChainPortfolio(
            wallet_address=wallet_address,
            total_value=total_value,
            chains=chains,
            degraded_chains=degraded,
        )


def sort_tokens_by_value(tokens: list[TokenHolding]) -> list[TokenHolding]:
    return sorted(tokens, key=lambda t: t.value, reverse=True)


def filter_tokens_by_value(tokens: list[TokenHolding], min_value: float = 0.01) -> list[TokenHolding]:
    return [t for t in tokens if t.value >= min_value]


def calculate_portfolio_summary(portfolio: MultiChainPortfolio) -> PortfolioSummary:
    """Token/chain counts, largest holding and per-chain share of total value."""
    all_tokens = [t for chain in portfolio.chains for t in chain.tokens]
    total_tokens = len(all_tokens)
    largest = max(all_tokens, key=lambda t: t.value, default=None)

    distribution: dict[str, float] = {}
    if portfolio.total_value > 0:
        for chain in portfolio.chains:
            if chain.total_value > 0:
                distribution[chain.chain_name] = chain.total_value / portfolio.total_value * 100

    return PortfolioSummary(
        total_tokens=total_tokens,
        total_chains=sum(1 for c in portfolio.chains if c.tokens),
        average_token_value=portfolio.total_value / total_tokens if total_tokens else 0.0,
        largest_holding=largest,
        chain_distribution=distribution,
    )
