"""Pydantic models for 1inch API responses.

Payloads are validated here, at the boundary, so the portfolio code never
touches raw dicts from the holdings or token-list endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from src.parsers.oneinch.exceptions import OneInchResponseError


class OneInchTokenDetail(BaseModel):
    """Single holding row from portfolio/v4/overview/erc20/details."""

    chain_id: int | None = None
    contract_address: str | None = None
    symbol: str | None = None
    name: str | None = None
    decimals: int | None = None
    amount: float | None = None
    price_to_usd: float | None = None
    value_usd: float | None = None
    abs_profit_usd: float | None = None  # already USD
    roi: float | None = None  # ratio, 0.12 == +12%

    model_config = {"extra": "ignore"}


class TokenDetailsResponse(BaseModel):
    result: list[OneInchTokenDetail] = []
    fetched_at: datetime | None = None  # set by the client from the cache entry

    model_config = {"extra": "ignore"}


class OneInchErrorBody(BaseModel):
    """Error envelope the API returns with a 2xx status on some endpoints."""

    error: str
    description: str | None = None
    statusCode: int | None = None

    model_config = {"extra": "ignore"}


class OneInchTokenInfo(BaseModel):
    """Token-list entry, keyed by contract address in the parent map."""

    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    logoURI: str | None = None

    model_config = {"extra": "ignore"}


class TokenListResponse(BaseModel):
    tokens: dict[str, OneInchTokenInfo] = {}

    model_config = {"extra": "ignore"}

    def by_address(self) -> dict[str, OneInchTokenInfo]:
        """Metadata keyed by lowercased contract address."""
        return {addr.lower(): info for addr, info in self.tokens.items()}


class HistoryResponse(BaseModel):
    """History events. Both ``{"result": [...]}`` and ``{"items": [...]}`` occur."""

    result: list[dict[str, Any]] | None = None
    items: list[dict[str, Any]] | None = None

    model_config = {"extra": "ignore"}

    @property
    def transactions(self) -> list[dict[str, Any]]:
        if self.result is not None:
            return self.result
        return self.items or []


def parse_token_details(data: Any) -> TokenDetailsResponse:
    """Validate a holdings payload; error envelopes and junk raise OneInchResponseError."""
    if not isinstance(data, dict):
        raise OneInchResponseError(f"Unexpected holdings payload type: {type(data).__name__}")
    if "error" in data and "result" not in data:
        body = OneInchErrorBody.model_validate(data)
        raise OneInchResponseError(f"API error: {body.error} ({body.description or 'no description'})")
    try:
        return TokenDetailsResponse.model_validate(data)
    except ValidationError as e:
        raise OneInchResponseError(f"Malformed holdings payload: {e.error_count()} errors") from e


def parse_token_list(data: Any) -> TokenListResponse:
    if not isinstance(data, dict):
        raise OneInchResponseError(f"Unexpected token list payload type: {type(data).__name__}")
    try:
        return TokenListResponse.model_validate(data)
    except ValidationError as e:
        raise OneInchResponseError(f"Malformed token list payload: {e.error_count()} errors") from e


def parse_history(data: Any) -> HistoryResponse:
    """Accept wrapped (result/items) or bare-list history payloads."""
    if isinstance(data, list):
        return HistoryResponse(result=[tx for tx in data if isinstance(tx, dict)])
    if not isinstance(data, dict):
        raise OneInchResponseError(f"Unexpected history payload type: {type(data).__name__}")
    try:
        return HistoryResponse.model_validate(data)
    except ValidationError as e:
        raise OneInchResponseError(f"Malformed history payload: {e.error_count()} errors") from e


def parse_spot_prices(data: Any) -> dict[str, float]:
    """Spot price map ``{address: "price"}`` keyed by lowercased address.

    Entries whose price is not a number are skipped.
    """
    if not isinstance(data, dict):
        raise OneInchResponseError(f"Unexpected spot price payload type: {type(data).__name__}")
    if "error" in data:
        body = OneInchErrorBody.model_validate(data)
        raise OneInchResponseError(f"API error: {body.error} ({body.description or 'no description'})")
    prices: dict[str, float] = {}
    for address, raw in data.items():
        try:
            prices[address.lower()] = float(raw)
        except (TypeError, ValueError):
            continue
    return prices
