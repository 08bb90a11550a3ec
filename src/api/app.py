"""FastAPI application factory for the portfolio dashboard."""

from __future__ import annotations

import os

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware

from src.api.dependencies import limiter
from src.api.middleware import SecurityHeadersMiddleware
from src.portfolio.context import AppContext


def create_app(context: AppContext) -> FastAPI:
    """Build the FastAPI application around an already-wired context."""
    app = FastAPI(
        title="Chainfolio Dashboard API",
        version="0.1.0",
        docs_url="/api/docs" if os.getenv("DASHBOARD_DEBUG") else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if os.getenv("DASHBOARD_DEBUG") else None,
    )
    app.state.context = context

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS: only needed for dev (Vite on :5173 → API on :8080)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    from src.api.routers.cache import router as cache_router
    from src.api.routers.health import router as health_router
    from src.api.routers.portfolio import router as portfolio_router
    from src.api.routers.proxy import router as proxy_router
    from src.api.routers.tokens import router as tokens_router

    app.include_router(health_router)
    app.include_router(portfolio_router)
    app.include_router(tokens_router)
    app.include_router(cache_router)
    app.include_router(proxy_router)

    return app
