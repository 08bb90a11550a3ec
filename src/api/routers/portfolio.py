"""Portfolio endpoints: snapshot, wallet, refresh, summary, rebalancing."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_store
from src.portfolio import rebalancing
from src.portfolio.aggregator import (
    calculate_portfolio_summary,
    filter_tokens_by_value,
    sort_tokens_by_value,
)
from src.portfolio.store import PortfolioStore

router = APIRouter(prefix="/api/v1/portfolio", tags=["portfolio"])


class WalletRequest(BaseModel):
    address: str = Field(max_length=128)


class TargetsRequest(BaseModel):
    allocations: dict[str, float]
    drift_threshold: float | None = Field(None, ge=0)


@router.get("")
async def get_portfolio(store: PortfolioStore = Depends(get_store)) -> dict[str, Any]:
    """Current store snapshot."""
    return asdict(store.snapshot)


@router.put("/wallet")
async def set_wallet(
    body: WalletRequest,
    store: PortfolioStore = Depends(get_store),
) -> dict[str, Any]:
    store.set_wallet_address(body.address)
    return asdict(store.snapshot)


@router.post("/refresh")
async def refresh_portfolio(
    store: PortfolioStore = Depends(get_store),
    force: bool = Query(False, description="Drop the API cache before fetching"),
) -> dict[str, Any]:
    """Fetch across all chains; failures land in ``error`` on the snapshot."""
    await store.fetch_portfolio(force=force)
    return asdict(store.snapshot)


@router.get("/summary")
async def portfolio_summary(
    store: PortfolioStore = Depends(get_store),
    min_value: float = Query(0.01, ge=0, description="Hide dust below this USD value"),
) -> dict[str, Any]:
    """Summary, diversity, risk and performers for the loaded portfolio."""
    portfolio = store.portfolio()
    if portfolio is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No portfolio loaded")

    tokens = sort_tokens_by_value(
        filter_tokens_by_value([t for c in portfolio.chains for t in c.tokens], min_value)
    )
    allocations = rebalancing.calculate_current_allocations(portfolio.chains, portfolio.total_value)

    return {
        "summary": asdict(calculate_portfolio_summary(portfolio)),
        "allocations": allocations,
        "diversity": asdict(rebalancing.calculate_portfolio_diversity(allocations)),
        "risk": asdict(rebalancing.calculate_risk_metrics(tokens)),
        "top_performers": [asdict(t) for t in rebalancing.get_top_performers(tokens)],
        "worst_performers": [asdict(t) for t in rebalancing.get_worst_performers(tokens)],
        "tokens": [asdict(t) for t in tokens],
    }


@router.put("/targets")
async def set_targets(
    body: TargetsRequest,
    store: PortfolioStore = Depends(get_store),
) -> dict[str, Any]:
    """Replace target allocations (and optionally the drift threshold)."""
    validation = store.set_target_allocations(body.allocations)
    if not validation.is_valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=validation.errors,
        )
    if body.drift_threshold is not None:
        store.set_drift_threshold(body.drift_threshold)
    return {
        "target_allocations": store.snapshot.target_allocations,
        "drift_threshold": store.snapshot.drift_threshold,
        "total_percentage": validation.total_percentage,
    }


@router.post("/rebalance")
async def rebalance(store: PortfolioStore = Depends(get_store)) -> dict[str, Any]:
    result = await store.generate_rebalancing_suggestions()
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=store.error or "Rebalancing unavailable",
        )
    return asdict(result)


@router.delete("/error")
async def clear_error(store: PortfolioStore = Depends(get_store)) -> dict[str, bool]:
    store.clear_error()
    return {"ok": True}
