"""Transaction history analytics for one wallet/token.

Transactions are plain dicts as returned by the history endpoint. Only a few
loosely-typed fields are read:

- ``type`` / ``method``: classification by case-insensitive substring
- ``value`` / ``amount``: volume, parsed like JS ``parseFloat`` (prefix, else 0)
- ``timeStamp`` (unix seconds) or ``timestamp`` (unix ms): calendar day, UTC
"""

import re
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

from loguru import logger

from src.parsers.oneinch.client import OneInchClient
from src.portfolio.models import (
    ActivityBreakdown,
    TimelinePoint,
    TransactionAnalytics,
    TransactionStats,
)

RECENT_LIMIT = 10
HISTORY_LIMIT = 50

ActivityKind = Literal["swaps", "transfers", "approvals", "other"]

PERIODS: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_float(raw: Any) -> float:
    """Leading numeric prefix of ``raw``; anything unparsable is 0."""
    if isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if raw == raw else 0.0  # NaN check
    match = _FLOAT_PREFIX.match(str(raw))
    return float(match.group(0)) if match else 0.0


def transaction_volume(tx: dict[str, Any]) -> float:
    return parse_float(tx.get("value") or tx.get("amount") or "0")


def classify_transaction(tx: dict[str, Any]) -> ActivityKind:
    kind = str(tx.get("type") or tx.get("method") or "other").lower()
    if "swap" in kind:
        return "swaps"
    if "transfer" in kind:
        return "transfers"
    if "approve" in kind:
        return "approvals"
    return "other"


def transaction_time(tx: dict[str, Any], now: datetime | None = None) -> datetime:
    """``timeStamp`` is seconds, ``timestamp`` is ms; missing or unrepresentable means now."""
    millis: float | None = None
    if tx.get("timeStamp"):
        millis = parse_float(tx["timeStamp"]) * 1000
    elif tx.get("timestamp"):
        millis = parse_float(tx["timestamp"])
    if not millis:
        return now or datetime.now(UTC)
    try:
        return datetime.fromtimestamp(millis / 1000, UTC)
    except (OverflowError, OSError, ValueError):
        logger.debug(f"[HISTORY] Timestamp out of range, using now: {millis}")
        return now or datetime.now(UTC)


def calculate_total_volume(transactions: Sequence[dict[str, Any]]) -> float:
    return sum(transaction_volume(tx) for tx in transactions)


def analyze_transaction_activity(transactions: Sequence[dict[str, Any]]) -> ActivityBreakdown:
    breakdown = ActivityBreakdown()
    for tx in transactions:
        kind = classify_transaction(tx)
        setattr(breakdown, kind, getattr(breakdown, kind) + 1)
    return breakdown


def generate_timeline_data(
    transactions: Sequence[dict[str, Any]],
    now: datetime | None = None,
) -> list[TimelinePoint]:
    """Per-day count and volume, ascending by date."""
    days: dict[str, TimelinePoint] = {}
    for tx in transactions:
        day = transaction_time(tx, now).date().isoformat()
        point = days.setdefault(day, TimelinePoint(date=day))
        point.count += 1
        point.volume += transaction_volume(tx)
    return [days[d] for d in sorted(days)]


def process_transaction_analytics(
    transactions: Sequence[dict[str, Any]],
    now: datetime | None = None,
) -> TransactionAnalytics:
    return TransactionAnalytics(
        recent_transactions=list(transactions[:RECENT_LIMIT]),
        total_transactions=len(transactions),
        total_volume=calculate_total_volume(transactions),
        activity_breakdown=analyze_transaction_activity(transactions),
        timeline_data=generate_timeline_data(transactions, now),
    )


def get_transaction_stats(
    transactions: Sequence[dict[str, Any]],
    now: datetime | None = None,
) -> TransactionStats:
    if not transactions:
        return TransactionStats(
            total_count=0,
            total_volume=0.0,
            average_volume=0.0,
            date_range=None,
            most_active_day=None,
        )

    total_volume = calculate_total_volume(transactions)
    timeline = generate_timeline_data(transactions, now)
    most_active: TimelinePoint | None = None
    for point in timeline:
        if most_active is None or point.count > most_active.count:
            most_active = point

    return TransactionStats(
        total_count=len(transactions),
        total_volume=total_volume,
        average_volume=total_volume / len(transactions),
        date_range=(timeline[0].date, timeline[-1].date),
        most_active_day=most_active,
    )


def filter_transactions_by_type(
    transactions: Sequence[dict[str, Any]],
    kind: ActivityKind,
) -> list[dict[str, Any]]:
    return [tx for tx in transactions if classify_transaction(tx) == kind]


def filter_transactions_by_date_range(
    transactions: Sequence[dict[str, Any]],
    start: datetime,
    end: datetime,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    return [tx for tx in transactions if start <= transaction_time(tx, now) <= end]


def get_transactions_for_period(
    transactions: Sequence[dict[str, Any]],
    period: str,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Transactions in the trailing window (``24h``, ``7d``, ``30d``, ``90d``).

    Unknown periods return the input unchanged.
    """
    window = PERIODS.get(period)
    if window is None:
        return list(transactions)
    end = now or datetime.now(UTC)
    return filter_transactions_by_date_range(transactions, end - window, end, end)


class TransactionAnalyticsService:
    """Fetches a wallet's token history from 1inch and summarizes it."""

    def __init__(self, client: OneInchClient) -> None:
        self._client = client

    async def fetch_transaction_analytics(
        self,
        chain_id: int,
        wallet_address: str,
        token_address: str | None = None,
        limit: int = HISTORY_LIMIT,
    ) -> TransactionAnalytics | None:
        """None when the wallet is missing or the history call fails."""
        if not wallet_address:
            logger.warning("[HISTORY] No wallet address provided")
            return None
        try:
            history = await self._client.get_transaction_history(
                wallet_address, chain_id, token_address, limit
            )
        except Exception as e:
            logger.warning(
                f"[HISTORY] Failed to fetch history for {wallet_address} "
                f"on chain {chain_id}: {e}"
            )
            return None

        analytics = process_transaction_analytics(history.transactions)
        logger.debug(
            f"[HISTORY] {wallet_address} chain {chain_id}: "
            f"{analytics.total_transactions} txs, volume {analytics.total_volume:.4f}"
        )
        return analytics
