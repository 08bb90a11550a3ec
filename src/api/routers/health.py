"""Health check: credential, Redis and portfolio freshness."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_context
from src.db.redis import ping_redis
from src.portfolio.context import AppContext

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    oneinch_configured: bool
    redis_ok: bool
    wallet_address: str | None
    last_updated: datetime | None
    degraded_chains: list[int]


@router.get("/health", response_model=HealthResponse)
async def health_check(ctx: AppContext = Depends(get_context)) -> HealthResponse:
    """Report upstream credential, Redis connectivity and portfolio freshness."""
    redis_ok = await ping_redis(ctx.redis)

    snap = ctx.store.snapshot
    configured = ctx.oneinch.is_configured
    healthy = configured and not snap.degraded_chains and not snap.error

    return HealthResponse(
        status="ok" if healthy else "degraded",
        version="0.1.0",
        oneinch_configured=configured,
        redis_ok=redis_ok,
        wallet_address=snap.wallet_address,
        last_updated=snap.last_updated,
        degraded_chains=snap.degraded_chains,
    )
