"""1inch Developer Portal API client with an in-process response cache.

All portfolio traffic goes through ``make_request``: cache lookup keyed by
endpoint + params, rate-limited GET with retry for transient errors
(timeout, 429, 5xx), then cache store. The bearer key is read from settings
on the server side and never leaves this process.
"""

import asyncio
from typing import Any

import httpx
from loguru import logger

from src.parsers.oneinch import endpoints
from src.parsers.oneinch.exceptions import OneInchConfigError, OneInchError, OneInchHttpError
from src.parsers.oneinch.models import (
    HistoryResponse,
    TokenDetailsResponse,
    TokenListResponse,
    parse_history,
    parse_spot_prices,
    parse_token_details,
    parse_token_list,
)
from src.parsers.rate_limiter import RateLimiter
from src.parsers.request_cache import ResponseCache, build_cache_key

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


def _query_params(params: dict[str, Any] | None) -> dict[str, str]:
    """Drop None values and stringify the rest the way the API expects."""
    if not params:
        return {}
    out: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[key] = "true" if value else "false"
        else:
            out[key] = str(value)
    return out


class OneInchClient:
    """Async client for the 1inch API (portfolio, token, history, spot price)."""

    def __init__(
        self,
        api_key: str,
        base_url: str = endpoints.BASE_URL,
        *,
        cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
        max_rps: float = 1.0,
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._cache = cache or ResponseCache()
        self._rate_limiter = rate_limiter or RateLimiter(max_rps)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
            },
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def _send(self, endpoint: str, params: dict[str, str]) -> httpx.Response:
        """Rate-limited GET; retries transient failures, returns the last response."""
        path = "/" + endpoint.lstrip("/")
        last_exc: Exception | None = None

        for attempt in range(MAX_RETRIES + 1):
            await self._rate_limiter.acquire()
            try:
                resp = await self._client.get(path, params=params)
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                last_exc = e
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[1INCH] {type(e).__name__}, retry {attempt + 1} in {delay}s: {path}")
                    await asyncio.sleep(delay)
                    continue
                raise OneInchError(f"Request failed after {MAX_RETRIES + 1} attempts: {path}: {e}") from e
            except httpx.RequestError as e:
                raise OneInchError(f"Request failed: {path}: {e}") from e

            if resp.status_code in RETRYABLE_STATUSES and attempt < MAX_RETRIES:
                delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                logger.debug(f"[1INCH] {resp.status_code}, retry {attempt + 1} in {delay}s: {path}")
                await asyncio.sleep(delay)
                continue
            return resp

        raise OneInchError(f"Request failed after retries: {path}") from last_exc

    async def make_request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        cache_timeout: float | None = None,
        skip_cache: bool = False,
    ) -> Any:
        """GET an endpoint and return parsed JSON, served from cache while fresh.

        Raises OneInchHttpError on a non-2xx status after retries.
        """
        if not self.is_configured:
            raise OneInchConfigError("1inch API key not configured")

        cache_key = build_cache_key(endpoint, params)
        if not skip_cache:
            cached = self._cache.get(cache_key, cache_timeout)
            if cached is not None:
                logger.debug(f"[1INCH] Cache hit for {endpoint}")
                return cached

        logger.debug(f"[1INCH] API request to {endpoint}")
        resp = await self._send(endpoint, _query_params(params))
        if not 200 <= resp.status_code < 300:
            raise OneInchHttpError(resp.status_code, endpoint)

        data = resp.json()
        if not skip_cache:
            self._cache.set(cache_key, data)
        return data

    async def forward(self, path: str, params: dict[str, Any] | None = None) -> tuple[int, Any]:
        """Pass a GET through to the upstream untouched (no cache, status preserved)."""
        if not self.is_configured:
            raise OneInchConfigError("1inch API key not configured")
        resp = await self._send(path, _query_params(params))
        try:
            body = resp.json()
        except ValueError:
            body = {"error": "Upstream returned non-JSON body"}
        return resp.status_code, body

    async def get_token_details(self, chain_id: int, wallet_address: str) -> TokenDetailsResponse:
        """Per-token holdings (amount, price, value, P&L, ROI) on one chain."""
        params = {
            "addresses": wallet_address,
            "chain_id": chain_id,
            **endpoints.TOKEN_DETAILS_DEFAULTS,
        }
        data = await self.make_request(endpoints.TOKEN_DETAILS, params)
        details = parse_token_details(data)
        details.fetched_at = self._cache.stored_at(build_cache_key(endpoints.TOKEN_DETAILS, params))
        return details

    async def get_token_list(self, chain_id: int, provider: str = "1inch") -> TokenListResponse:
        """Token metadata list for a chain (name, symbol, decimals, logoURI)."""
        data = await self.make_request(
            endpoints.TOKEN_LIST.format(chain_id=chain_id),
            {"provider": provider},
        )
        return parse_token_list(data)

    async def get_transaction_history(
        self,
        wallet_address: str,
        chain_id: int,
        token_address: str | None = None,
        limit: int = 50,
    ) -> HistoryResponse:
        data = await self.make_request(
            endpoints.HISTORY_EVENTS.format(address=wallet_address),
            {"chainId": chain_id, "tokenAddress": token_address, "limit": limit},
        )
        return parse_history(data)

    async def get_token_prices(self, chain_id: int, token_addresses: list[str]) -> dict[str, float]:
        """USD spot prices keyed by lowercased token address."""
        data = await self.make_request(
            endpoints.SPOT_PRICE.format(chain_id=chain_id, addresses=",".join(token_addresses)),
            {"currency": "USD"},
        )
        return parse_spot_prices(data)

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("[1INCH] API cache cleared")

    def get_cache_stats(self) -> dict[str, int]:
        return self._cache.stats()

    async def close(self) -> None:
        await self._client.aclose()
