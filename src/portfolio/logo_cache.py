"""Token logo resolution with a two-tier cache.

Lookup order: preloaded entries (Redis-backed, survive restarts) → runtime
memory → CoinGecko by contract → CoinGecko symbol search → generated
placeholder. ``get_token_logo`` always returns a URL.

Redis layout: hash ``token_logos``, field ``"{chain_id}:{address}"``, value
JSON ``{"url": ..., "timestamp": unix_seconds}``. Entries older than the TTL
are dropped on load.
"""

import asyncio
import json
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from urllib.parse import quote

from loguru import logger
from redis.asyncio import Redis

from src.parsers.coingecko.client import CoinGeckoClient
from src.portfolio.chains import CHAIN_TO_COINGECKO_PLATFORM

REDIS_KEY = "token_logos"
DEFAULT_TTL_SEC = 24 * 60 * 60
PRELOAD_BATCH_SIZE = 5
PRELOAD_BATCH_DELAY = 0.2  # seconds between batches, keeps CoinGecko happy
PLACEHOLDER_URL = "https://via.placeholder.com/32x32/6366f1/ffffff?text={letter}"

# Warmed on startup: (address, chain_id, symbol)
COMMON_TOKENS: list[tuple[str, int, str]] = [
    ("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 1, "WETH"),
    ("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 1, "WBTC"),
    ("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 1, "USDC"),
    ("0xdAC17F958D2ee523a2206206994597C13D831ec7", 1, "USDT"),
    ("0x6B175474E89094C44Da98b954EedeAC495271d0F", 1, "DAI"),
]


@dataclass
class LogoEntry:
    url: str
    timestamp: float  # unix seconds


def logo_cache_key(chain_id: int, address: str) -> str:
    return f"{chain_id}:{address.lower()}"


def placeholder_logo(symbol: str) -> str:
    letter = (symbol[:1] or "?").upper()
    return PLACEHOLDER_URL.format(letter=quote(letter, safe=""))


class TokenLogoCache:
    """Resolves token icons; never raises to callers."""

    def __init__(
        self,
        coingecko: CoinGeckoClient,
        redis: Redis | None = None,
        ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._coingecko = coingecko
        self._redis = redis
        self._ttl = ttl_sec
        self._clock = clock
        self._memory: dict[str, LogoEntry] = {}
        self._search_memory: dict[str, LogoEntry] = {}  # symbol → search hit
        self._preloaded: dict[str, LogoEntry] = {}
        self._pending: dict[str, asyncio.Task[str]] = {}  # lookups outliving their deadline
        self._is_preloading = False

    def _is_fresh(self, entry: LogoEntry | None) -> bool:
        return entry is not None and self._clock() - entry.timestamp < self._ttl

    async def load_persisted(self) -> int:
        """Load durable entries from Redis, discarding (and deleting) stale ones."""
        if self._redis is None:
            return 0
        try:
            raw = await self._redis.hgetall(REDIS_KEY)
        except Exception as e:
            logger.warning(f"[LOGO] Failed to load persisted logos: {e}")
            return 0

        stale: list[str] = []
        for key, value in raw.items():
            try:
                payload = json.loads(value)
                entry = LogoEntry(url=str(payload["url"]), timestamp=float(payload["timestamp"]))
            except (ValueError, KeyError, TypeError):
                stale.append(key)
                continue
            if self._is_fresh(entry):
                self._preloaded[key] = entry
            else:
                stale.append(key)

        if stale:
            try:
                await self._redis.hdel(REDIS_KEY, *stale)
            except Exception as e:
                logger.debug(f"[LOGO] Failed to prune {len(stale)} stale logos: {e}")

        logger.info(f"[LOGO] Loaded {len(self._preloaded)} preloaded logos from Redis")
        return len(self._preloaded)

    async def _persist(self) -> None:
        if self._redis is None or not self._preloaded:
            return
        mapping = {
            key: json.dumps({"url": entry.url, "timestamp": entry.timestamp})
            for key, entry in self._preloaded.items()
        }
        try:
            await self._redis.hset(REDIS_KEY, mapping=mapping)
        except Exception as e:
            logger.warning(f"[LOGO] Failed to persist preloaded logos: {e}")

    async def get_token_logo(self, address: str, chain_id: int, symbol: str) -> str:
        key = logo_cache_key(chain_id, address)

        preloaded = self._preloaded.get(key)
        if self._is_fresh(preloaded):
            return preloaded.url

        cached = self._memory.get(key)
        if self._is_fresh(cached):
            return cached.url

        try:
            url = await self._fetch_token_logo(address, chain_id, symbol)
        except Exception as e:
            logger.debug(f"[LOGO] Contract lookup failed for {address} on {chain_id}: {e}")
            return await self._fallback_logo(symbol)

        self._memory[key] = LogoEntry(url=url, timestamp=self._clock())
        return url

    async def get_token_logo_within(
        self,
        address: str,
        chain_id: int,
        symbol: str,
        timeout: float,
    ) -> str:
        """``get_token_logo`` bounded by ``timeout`` seconds.

        On timeout the placeholder is returned while the lookup keeps running
        and fills the cache for the next fetch. Concurrent calls for the same
        token share one lookup.
        """
        key = logo_cache_key(chain_id, address)
        for entry in (self._preloaded.get(key), self._memory.get(key)):
            if self._is_fresh(entry):
                return entry.url

        task = self._pending.get(key)
        if task is None:
            task = asyncio.create_task(self.get_token_logo(address, chain_id, symbol))
            self._pending[key] = task
            task.add_done_callback(lambda _t: self._pending.pop(key, None))

        done, _ = await asyncio.wait({task}, timeout=timeout)
        if task in done:
            return task.result()
        logger.debug(f"[LOGO] Lookup for {symbol} on {chain_id} exceeded {timeout}s, using placeholder")
        return placeholder_logo(symbol)

    async def _fetch_token_logo(self, address: str, chain_id: int, symbol: str) -> str:
        platform_id = CHAIN_TO_COINGECKO_PLATFORM.get(chain_id)
        if not platform_id:
            logger.debug(f"[LOGO] No CoinGecko platform mapping for chain {chain_id}")
            return await self._fallback_logo(symbol)
        if not address:
            return await self._fallback_logo(symbol)

        coin = await self._coingecko.get_coin_by_contract(platform_id, address)
        if coin is not None and coin.image is not None:
            url = coin.image.best()
            if url:
                return url
        return await self._fallback_logo(symbol)

    async def _fallback_logo(self, symbol: str) -> str:
        """Symbol search, then placeholder. Swallows provider errors."""
        if not symbol:
            return placeholder_logo(symbol)

        search_key = symbol.lower()
        cached = self._search_memory.get(search_key)
        if self._is_fresh(cached):
            return cached.url

        try:
            result = await self._coingecko.search(symbol)
            coin = result.find_symbol(symbol)
            url = coin.best_image() if coin else None
            if url:
                self._search_memory[search_key] = LogoEntry(url=url, timestamp=self._clock())
                return url
        except Exception as e:
            logger.debug(f"[LOGO] Symbol search failed for {symbol}: {e}")

        return placeholder_logo(symbol)

    async def _preload_one(self, address: str, chain_id: int, symbol: str) -> bool:
        key = logo_cache_key(chain_id, address)
        if key in self._memory or key in self._preloaded:
            return False
        try:
            url = await self._fetch_token_logo(address, chain_id, symbol)
        except Exception as e:
            logger.warning(f"[LOGO] Failed to preload logo for {symbol}: {e}")
            return False
        self._preloaded[key] = LogoEntry(url=url, timestamp=self._clock())
        return True

    async def preload_common_tokens(self, tokens: Sequence[tuple[str, int, str]]) -> int:
        """Warm the durable tier for (address, chain_id, symbol) triples.

        Runs 5 lookups at a time with a short pause between batches. A call made
        while another preload is running returns 0 immediately.
        """
        if self._is_preloading:
            return 0

        self._is_preloading = True
        loaded = 0
        try:
            for i in range(0, len(tokens), PRELOAD_BATCH_SIZE):
                batch = tokens[i : i + PRELOAD_BATCH_SIZE]
                results = await asyncio.gather(
                    *(self._preload_one(addr, chain_id, sym) for addr, chain_id, sym in batch)
                )
                loaded += sum(results)
                if i + PRELOAD_BATCH_SIZE < len(tokens):
                    await asyncio.sleep(PRELOAD_BATCH_DELAY)
            await self._persist()
        finally:
            self._is_preloading = False

        logger.info(f"[LOGO] Preloaded {loaded} token logos ({len(self._preloaded)} total)")
        return loaded

    async def clear_cache(self) -> None:
        self._memory.clear()
        self._search_memory.clear()
        self._preloaded.clear()
        if self._redis is not None:
            try:
                await self._redis.delete(REDIS_KEY)
            except Exception as e:
                logger.warning(f"[LOGO] Failed to clear Redis logo cache: {e}")
        logger.info("[LOGO] Logo cache cleared")

    def get_cache_stats(self) -> dict[str, dict[str, int]]:
        def _counts(entries: dict[str, LogoEntry]) -> dict[str, int]:
            valid = sum(1 for e in entries.values() if self._is_fresh(e))
            return {"total": len(entries), "valid": valid, "expired": len(entries) - valid}

        return {
            "runtime_cache": _counts(self._memory),
            "preload_cache": _counts(self._preloaded),
        }
