"""Dashboard server: runs uvicorn inside the existing asyncio event loop."""

from __future__ import annotations

import uvicorn
from loguru import logger

from src.portfolio.context import AppContext


async def run_dashboard_server(context: AppContext) -> None:
    """Start uvicorn serving the FastAPI dashboard.

    Runs as an asyncio task alongside the portfolio refresh loop.
    """
    from src.api.app import create_app

    app = create_app(context)
    port = context.settings.dashboard_port
    config = uvicorn.Config(
        app=app,
        host="0.0.0.0",
        port=port,
        log_level="warning",
        loop="none",  # use the existing event loop
    )
    server = uvicorn.Server(config)
    logger.info(f"Dashboard API starting on http://0.0.0.0:{port}")
    await server.serve()
