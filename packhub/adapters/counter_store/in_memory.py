"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from packhub.adapters.counter_store.base import (
    TTL_MISSING,
    TTL_NO_EXPIRY,
    AbstractCounterStore,
)


@dataclass
class _Entry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping values in a dict with lazy expiry.

    Mirrors the subset of Redis behavior the rate limiter relies on: INCR on
    a missing key creates it at 1 without expiry, TTL answers -2/-1 for
    missing/persistent keys, and expired keys disappear on next access.

    Important:
        This store is per-process only. Use the Redis store whenever more
        than one worker serves traffic.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(size={len(self._entries)})"

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        with self._lock:
            self._entries[key] = _Entry(
                value=int(value),
                expires_at=self._clock() + ttl_seconds,
            )

    async def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry(value=0, expires_at=None)
                self._entries[key] = entry
            entry.value += 1
            return entry.value

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return TTL_MISSING
            if entry.expires_at is None:
                return TTL_NO_EXPIRY
            return max(0, int(math.ceil(entry.expires_at - self._clock())))

    def clear(self) -> None:
        """Drop every counter."""

        with self._lock:
            self._entries.clear()
