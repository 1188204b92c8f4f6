"""Snowflake-style string IDs for mirror rows (markets, trades).

Layout (63 bits): 41-bit millisecond offset from 2025-01-01, 10-bit node,
12-bit per-millisecond sequence. IDs compare as integers in creation
order; the trade list cursor is an ID and is compared as BIGINT.
"""

import threading
import time
from collections.abc import Callable
from typing import NamedTuple

EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
NODE_BITS = 10
SEQUENCE_BITS = 12
_MAX_NODE = (1 << NODE_BITS) - 1
_MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
_MAX_ID = (1 << 63) - 1


class IdParts(NamedTuple):
    unix_ms: int
    node: int
    sequence: int


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeIdGenerator:
    def __init__(self, node_id: int = 0, clock_ms: Callable[[], int] = _wall_clock_ms) -> None:
        if not 0 <= node_id <= _MAX_NODE:
            raise ValueError(f"node_id must be 0-{_MAX_NODE}")
        self._node_id = node_id
        self._clock_ms = clock_ms
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def _tick(self) -> int:
        # A clock that steps back reuses the last millisecond.
        now = max(self._clock_ms(), self._last_ms)
        if now != self._last_ms:
            self._sequence = 0
            return now
        self._sequence = (self._sequence + 1) & _MAX_SEQUENCE
        while self._sequence == 0 and now <= self._last_ms:
            now = self._clock_ms()
        return now

    def next_id(self) -> str:
        with self._lock:
            self._last_ms = self._tick()
            offset = self._last_ms - EPOCH_MS
            return str(
                offset << (NODE_BITS + SEQUENCE_BITS)
                | self._node_id << SEQUENCE_BITS
                | self._sequence
            )


def parse_id(value: str) -> int | None:
    """Integer form of a generated ID, or None if `value` cannot be one."""
    if not value.isdigit():
        return None
    n = int(value)
    return n if n <= _MAX_ID else None


def decode_id(value: str) -> IdParts:
    n = parse_id(value)
    if n is None:
        raise ValueError(f"not a snowflake id: {value!r}")
    return IdParts(
        unix_ms=(n >> (NODE_BITS + SEQUENCE_BITS)) + EPOCH_MS,
        node=(n >> SEQUENCE_BITS) & _MAX_NODE,
        sequence=n & _MAX_SEQUENCE,
    )


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    return _default_generator.next_id()
