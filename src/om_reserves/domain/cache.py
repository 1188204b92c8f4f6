"""TTL cache for display-only reserve reads.

Entries are explicit (value, fetched_at) pairs and the clock is injectable,
so expiry is testable without wall-clock waits. Funds-committing paths never
read from here.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from src.om_pricing.domain.models import Reserves


@dataclass(frozen=True)
class CacheEntry:
    value: Reserves
    fetched_at: float


class ReserveCache:
    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[int, CacheEntry] = {}

    def get(self, market_id: int) -> Reserves | None:
        entry = self._entries.get(market_id)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._ttl_s:
            del self._entries[market_id]
            return None
        return entry.value

    def put(self, market_id: int, value: Reserves) -> None:
        self._entries[market_id] = CacheEntry(value=value, fetched_at=self._clock())

    def invalidate(self, market_id: int) -> None:
        self._entries.pop(market_id, None)

    def __len__(self) -> int:
        return len(self._entries)
