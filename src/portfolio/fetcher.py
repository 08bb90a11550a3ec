"""Per-chain portfolio fetch: holdings + token list, joined and normalized.

Holdings and the chain token list are requested concurrently. A holdings
failure zeroes the chain (flagged ``degraded``); a token-list failure only
means names/decimals fall back to defaults.
"""

import asyncio
from datetime import UTC, datetime
from typing import TypeVar

from loguru import logger

from src.parsers.oneinch.client import OneInchClient
from src.parsers.oneinch.models import OneInchTokenDetail, OneInchTokenInfo, TokenListResponse
from src.portfolio.chains import is_chain_supported
from src.portfolio.formatting import format_token_balance
from src.portfolio.logo_cache import TokenLogoCache
from src.portfolio.models import PortfolioResult, TokenHolding

T = TypeVar("T")

DEFAULT_SYMBOL = "UNKNOWN"
DEFAULT_NAME = "Unknown Token"
DEFAULT_DECIMALS = 18
DEFAULT_LOGO_TIMEOUT_SEC = 2.0


def resolve_field(record_value: T | None, metadata_value: T | None, default: T) -> T:
    """Field precedence: holdings record, then token-list metadata, then default.

    Empty strings and zero count as missing, matching how the upstream
    leaves unknown fields blank.
    """
    if record_value:
        return record_value
    if metadata_value:
        return metadata_value
    return default


class PortfolioFetcher:
    """Builds one chain's token list for a wallet."""

    def __init__(
        self,
        client: OneInchClient,
        logo_cache: TokenLogoCache,
        logo_timeout_sec: float = DEFAULT_LOGO_TIMEOUT_SEC,
    ) -> None:
        self._client = client
        self._logos = logo_cache
        self._logo_timeout = logo_timeout_sec

    async def _fetch_metadata(self, chain_id: int) -> TokenListResponse | None:
        try:
            return await self._client.get_token_list(chain_id)
        except Exception as e:
            logger.warning(f"[PORTFOLIO] Token list failed for chain {chain_id}: {e}")
            return None

    async def _build_holding(
        self,
        detail: OneInchTokenDetail,
        metadata: OneInchTokenInfo | None,
        chain_id: int,
        fetched_at: datetime,
    ) -> TokenHolding:
        symbol = resolve_field(detail.symbol, metadata.symbol if metadata else None, DEFAULT_SYMBOL)
        name = resolve_field(detail.name, metadata.name if metadata else None, DEFAULT_NAME)
        decimals = resolve_field(detail.decimals, metadata.decimals if metadata else None, DEFAULT_DECIMALS)
        balance = detail.amount or 0.0
        roi = detail.roi or 0.0

        # Slow CoinGecko lookups fall back to the placeholder and finish in the background
        logo = await self._logos.get_token_logo_within(
            detail.contract_address or "", chain_id, symbol, self._logo_timeout
        )

        return TokenHolding(
            address=detail.contract_address or f"unknown_{chain_id}",
            symbol=symbol,
            name=name,
            decimals=decimals,
            balance=balance,
            price=detail.price_to_usd or 0.0,
            value=detail.value_usd or 0.0,
            logo=logo,
            profit_loss=detail.abs_profit_usd or 0.0,
            profit_loss_percent=roi * 100,
            roi=roi,
            balance_formatted=format_token_balance(balance, decimals),
            last_updated=fetched_at.isoformat(),
        )

    async def get_portfolio_value(self, chain_id: int, wallet_address: str) -> PortfolioResult:
        """Normalized holdings with value > 0 and their summed USD value."""
        if not is_chain_supported(chain_id):
            logger.debug(f"[PORTFOLIO] Chain {chain_id} not supported, skipping")
            return PortfolioResult()

        details_result, metadata = await asyncio.gather(
            self._client.get_token_details(chain_id, wallet_address),
            self._fetch_metadata(chain_id),
            return_exceptions=True,
        )
        if isinstance(details_result, BaseException):
            if isinstance(details_result, asyncio.CancelledError):
                raise details_result
            logger.warning(f"[PORTFOLIO] Holdings failed for chain {chain_id}: {details_result}")
            return PortfolioResult(degraded=True)

        metadata_map = metadata.by_address() if isinstance(metadata, TokenListResponse) else {}
        rows = [d for d in details_result.result if d.chain_id == chain_id]
        # Holdings served from cache keep the time they were actually fetched
        fetched_at = details_result.fetched_at or datetime.now(UTC)

        holdings = await asyncio.gather(
            *(
                self._build_holding(
                    row,
                    metadata_map.get((row.contract_address or "").lower()),
                    chain_id,
                    fetched_at,
                )
                for row in rows
            )
        )

        tokens = [h for h in holdings if h.value > 0]
        total_value = sum(t.value for t in tokens)
        logger.debug(
            f"[PORTFOLIO] Chain {chain_id}: {len(tokens)}/{len(rows)} tokens, ${total_value:,.2f}"
        )
        return PortfolioResult(total_value=total_value, tokens=tokens)
