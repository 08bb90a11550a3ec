"""Cache endpoints: API response cache and logo cache controls."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from src.api.dependencies import get_context
from src.portfolio.context import AppContext

router = APIRouter(prefix="/api/v1/cache", tags=["cache"])


@router.get("/stats")
async def cache_stats(ctx: AppContext = Depends(get_context)) -> dict[str, Any]:
    return {
        "api": ctx.oneinch.get_cache_stats(),
        "logos": ctx.logo_cache.get_cache_stats(),
    }


@router.post("/clear")
async def clear_caches(ctx: AppContext = Depends(get_context)) -> dict[str, bool]:
    """Drop cached API responses and logos (memory and Redis)."""
    ctx.oneinch.clear_cache()
    await ctx.logo_cache.clear_cache()
    return {"ok": True}
