"""Service graph for one running process.

Built once at startup by ``build_context`` and handed to the API via
``app.state``; nothing here is a module-level singleton.
"""

from dataclasses import dataclass

from loguru import logger
from redis.asyncio import Redis

from config.settings import Settings
from src.parsers.coingecko.client import CoinGeckoClient
from src.parsers.oneinch.client import OneInchClient
from src.parsers.request_cache import ResponseCache
from src.portfolio.aggregator import PortfolioAggregator
from src.portfolio.fetcher import PortfolioFetcher
from src.portfolio.logo_cache import TokenLogoCache
from src.portfolio.store import PortfolioStore
from src.portfolio.token_details import TokenDataService
from src.portfolio.transactions import TransactionAnalyticsService


@dataclass
class AppContext:
    settings: Settings
    oneinch: OneInchClient
    coingecko: CoinGeckoClient
    logo_cache: TokenLogoCache
    fetcher: PortfolioFetcher
    aggregator: PortfolioAggregator
    analytics: TransactionAnalyticsService
    tokens: TokenDataService
    store: PortfolioStore
    redis: Redis | None = None

    async def close(self) -> None:
        await self.oneinch.close()
        await self.coingecko.close()
        logger.info("[CONTEXT] HTTP clients closed")


def build_context(settings: Settings, redis: Redis | None = None) -> AppContext:
    """Wire clients, caches and services from settings.

    ``redis`` is optional; without it the logo cache is memory-only.
    """
    oneinch = OneInchClient(
        settings.oneinch_api_key,
        settings.oneinch_base_url,
        cache=ResponseCache(ttl_sec=settings.api_cache_ttl_sec),
        max_rps=settings.oneinch_max_rps,
        timeout=settings.request_timeout_sec,
    )
    coingecko = CoinGeckoClient(
        settings.coingecko_api_key,
        settings.coingecko_base_url,
        max_rps=settings.coingecko_max_rps,
        timeout=settings.request_timeout_sec,
    )
    logo_cache = TokenLogoCache(
        coingecko,
        redis=redis if settings.enable_logo_persistence else None,
        ttl_sec=settings.logo_cache_ttl_sec,
    )
    fetcher = PortfolioFetcher(oneinch, logo_cache, settings.logo_lookup_timeout_sec)
    aggregator = PortfolioAggregator(fetcher)
    analytics = TransactionAnalyticsService(oneinch)
    store = PortfolioStore(
        oneinch,
        aggregator,
        target_allocations=settings.default_target_allocations,
        drift_threshold=settings.default_drift_threshold,
    )

    if not oneinch.is_configured:
        logger.warning("[CONTEXT] ONEINCH_API_KEY not set, portfolio fetches will fail")

    return AppContext(
        settings=settings,
        oneinch=oneinch,
        coingecko=coingecko,
        logo_cache=logo_cache,
        fetcher=fetcher,
        aggregator=aggregator,
        analytics=analytics,
        tokens=TokenDataService(oneinch, analytics),
        store=store,
        redis=redis,
    )
