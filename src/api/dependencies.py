"""FastAPI dependency injection: app context, store, shared rate limiter."""

from __future__ import annotations

from fastapi import Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.portfolio.context import AppContext
from src.portfolio.store import PortfolioStore

# Rate limiter (shared instance)
limiter = Limiter(key_func=get_remote_address)


def get_context(request: Request) -> AppContext:
    """Return the service graph attached by ``create_app``."""
    return request.app.state.context


def get_store(ctx: AppContext = Depends(get_context)) -> PortfolioStore:
    return ctx.store
