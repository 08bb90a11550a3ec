"""In-process TTL cache for upstream API responses.

Entries are keyed by endpoint + a stable JSON rendering of the query params.
Nothing is evicted proactively: stale entries stay in the map (and show up as
``expired_entries`` in stats) until overwritten or ``clear()`` is called.
"""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

DEFAULT_TTL_SEC = 300.0


@dataclass
class CacheEntry:
    data: Any
    timestamp: float  # cache clock, used for expiry
    stored_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def build_cache_key(endpoint: str, params: dict[str, Any] | None = None) -> str:
    """Cache key for a request: exact endpoint plus sorted-key JSON of params."""
    rendered = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return f"{endpoint}:{rendered}"


class ResponseCache:
    """TTL map of parsed JSON responses.

    ``clock`` returns seconds; injectable so expiry can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_sec: float = DEFAULT_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_sec
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, ttl_sec: float | None = None) -> Any | None:
        """Return cached data if the entry is younger than the TTL, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        ttl = self._ttl if ttl_sec is None else ttl_sec
        if self._clock() - entry.timestamp < ttl:
            return entry.data
        return None

    def stored_at(self, key: str) -> datetime | None:
        """Wall-clock time the entry for ``key`` was written, if any."""
        entry = self._entries.get(key)
        return entry.stored_at if entry else None

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, int]:
        """Counts of total/valid/expired entries against the default TTL."""
        now = self._clock()
        valid = sum(1 for e in self._entries.values() if now - e.timestamp < self._ttl)
        total = len(self._entries)
        return {
            "total_entries": total,
            "valid_entries": valid,
            "expired_entries": total - valid,
        }
