"""CoinGecko API client: token images by contract address or symbol search.

Public tier is aggressively rate limited (~30 calls/min), so every call goes
through the shared RateLimiter and 429s are retried once with a long delay.
Non-2xx answers other than 429 come back as ``None``: a missing coin is a
normal outcome for long-tail tokens.
"""

import asyncio
from typing import Any

import httpx
from loguru import logger

from src.parsers.coingecko.models import CoinGeckoContractCoin, CoinGeckoSearchResult
from src.parsers.rate_limiter import RateLimiter

BASE_URL = "https://api.coingecko.com/api/v3"
MAX_RETRIES = 1
RETRY_DELAYS = [5.0]


class CoinGeckoError(Exception):
    pass


class CoinGeckoClient:
    """Async client for the CoinGecko v3 API (demo key optional)."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = BASE_URL,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 0.5,
        timeout: float = 10.0,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["x-cg-demo-api-key"] = api_key
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any] | None:
        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, params=params)
            except httpx.RequestError as e:
                raise CoinGeckoError(f"Request failed: {path}: {e}") from e

            if resp.status_code == 429:
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[COINGECKO] 429 rate limited, retry in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise CoinGeckoError(f"Rate limited (429): {path}")

            if resp.status_code != 200:
                logger.debug(f"[COINGECKO] {resp.status_code} for {path}")
                return None

            data = resp.json()
            return data if isinstance(data, dict) else None

        return None

    async def get_coin_by_contract(self, platform_id: str, address: str) -> CoinGeckoContractCoin | None:
        """Coin info for a contract on a platform (e.g. ``ethereum``, ``polygon-pos``)."""
        data = await self._get_json(f"/coins/{platform_id}/contract/{address.lower()}")
        if data is None:
            return None
        return CoinGeckoContractCoin.model_validate(data)

    async def search(self, query: str) -> CoinGeckoSearchResult:
        data = await self._get_json("/search", params={"query": query})
        if data is None:
            return CoinGeckoSearchResult()
        return CoinGeckoSearchResult.model_validate(data)

    async def close(self) -> None:
        await self._client.aclose()
