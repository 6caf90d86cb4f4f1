"""Counter store interface.

The rate limiter should depend on this abstraction (not the concrete store)
so the shared backend can be swapped with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# TTL sentinels follow Redis semantics.
TTL_MISSING = -2
TTL_NO_EXPIRY = -1


class AbstractCounterStore(ABC):
    """Interface for shared counter stores.

    Every method is a round-trip to a store shared by all serving processes
    and may fail. Implementations raise ``CounterStoreError`` for any
    transport or protocol failure.
    """

    @abstractmethod
    async def get(self, key: str) -> int | None:
        """Return the counter stored under ``key`` or None when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` expiring after ``ttl_seconds``."""
        raise NotImplementedError

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment ``key`` and return the new value.

        A missing key is created at 1 without expiry.
        """
        raise NotImplementedError

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Return remaining seconds before ``key`` expires.

        Returns:
            Seconds remaining, ``TTL_NO_EXPIRY`` (-1) when the key has no
            expiry, or ``TTL_MISSING`` (-2) when the key does not exist.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release connections held by the store."""
        return None
