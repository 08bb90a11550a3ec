"""Upstream proxy: forwards GETs to 1inch with the server-held bearer key."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from config.settings import settings
from src.api.dependencies import get_context, limiter
from src.parsers.oneinch.exceptions import OneInchConfigError, OneInchError
from src.portfolio.context import AppContext

router = APIRouter(prefix="/api/proxy", tags=["proxy"])


@router.get("/{path:path}")
@limiter.limit(settings.proxy_rate_limit)
async def proxy_get(
    request: Request,
    path: str,
    ctx: AppContext = Depends(get_context),
) -> JSONResponse:
    """Upstream status and JSON body are passed through unchanged."""
    try:
        status_code, body = await ctx.oneinch.forward(path, dict(request.query_params))
    except OneInchConfigError as e:
        return JSONResponse(status_code=503, content={"error": str(e)})
    except OneInchError as e:
        logger.warning(f"[PROXY] {path}: {e}")
        return JSONResponse(status_code=502, content={"error": "Upstream request failed"})
    return JSONResponse(status_code=status_code, content=body)
