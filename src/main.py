"""Entry point for the chainfolio portfolio service."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from src.db.redis import close_redis, get_redis
from src.portfolio.context import build_context
from src.portfolio.logo_cache import COMMON_TOKENS
from src.portfolio.store import portfolio_refresh_loop
from src.utils.logger import setup_logger


async def main() -> None:
    setup_logger(level="INFO")
    logger.info("Starting chainfolio...")

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_event_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    redis = await get_redis()
    ctx = build_context(settings, redis)

    await ctx.logo_cache.load_persisted()

    if settings.demo_wallet_address:
        ctx.store.set_wallet_address(settings.demo_wallet_address)

    tasks = [
        asyncio.create_task(ctx.logo_cache.preload_common_tokens(COMMON_TOKENS)),
        asyncio.create_task(
            portfolio_refresh_loop(ctx.store, settings.portfolio_refresh_interval_sec)
        ),
    ]
    if ctx.store.wallet_address and ctx.oneinch.is_configured:
        tasks.append(asyncio.create_task(ctx.store.fetch_portfolio()))
    if settings.dashboard_enabled:
        from src.api.server import run_dashboard_server

        tasks.append(asyncio.create_task(run_dashboard_server(ctx)))

    await shutdown_event.wait()

    # Cancel remaining tasks
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Task {task.get_name()} failed: {e}")

    await ctx.close()
    await close_redis()
    logger.info("Shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
