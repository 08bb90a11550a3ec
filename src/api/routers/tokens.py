"""Token endpoints: token page data and per-token transaction analytics."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_context
from src.portfolio.chains import get_chain_name, is_chain_supported
from src.portfolio.context import AppContext
from src.portfolio.transactions import HISTORY_LIMIT

router = APIRouter(prefix="/api/v1/tokens", tags=["tokens"])


def _require_supported(chain_id: int) -> None:
    if not is_chain_supported(chain_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chain not supported")


@router.get("/{chain_id}/{address}")
async def token_details(
    chain_id: int,
    address: str,
    ctx: AppContext = Depends(get_context),
    wallet: str = Query("", max_length=128, description="Defaults to the store wallet"),
) -> dict[str, Any]:
    """Spot price, holding, P/L metrics and transaction analytics for one token.

    Each part is null when its source is unavailable.
    """
    _require_supported(chain_id)
    wallet_address = wallet or ctx.store.wallet_address or ""
    data = await ctx.tokens.fetch_comprehensive_token_data(
        chain_id, address, wallet_address, ctx.store.chains
    )
    return asdict(data)


@router.get("/{chain_id}/{address}/transactions")
async def token_transactions(
    chain_id: int,
    address: str,
    ctx: AppContext = Depends(get_context),
    wallet: str = Query("", max_length=128, description="Defaults to the store wallet"),
    limit: int = Query(HISTORY_LIMIT, ge=1, le=500),
) -> dict[str, Any]:
    """Activity breakdown, volume and daily timeline for one token."""
    _require_supported(chain_id)

    wallet_address = wallet or ctx.store.wallet_address or ""
    if not wallet_address:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No wallet address provided",
        )

    analytics = await ctx.analytics.fetch_transaction_analytics(
        chain_id, wallet_address, address, limit
    )
    if analytics is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch transaction history",
        )

    return {
        "chain_id": chain_id,
        "chain_name": get_chain_name(chain_id),
        "wallet_address": wallet_address,
        "token_address": address,
        **asdict(analytics),
    }
