"""Redis-backed counter store.

**Security Note**: use a ``rediss://`` URL when the store is reached over an
untrusted network, and never log the connection URL since it may carry a
password.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from packhub.adapters.counter_store.base import AbstractCounterStore
from packhub.core.errors import CounterStoreError

logger = logging.getLogger(__name__)

_STORE_FAILURES = (RedisError, OSError, TimeoutError)


class RedisCounterStore(AbstractCounterStore):
    """Counter store issuing GET / SET EX / INCR / TTL against Redis.

    No local caching and no retries: every call is one live round-trip and a
    failed call is reported to the caller as ``CounterStoreError``.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float = 2.0,
        connect_timeout: float = 2.0,
    ) -> "RedisCounterStore":
        """Build a store with its own connection pool.

        Args:
            url: Redis connection URL.
            socket_timeout: Seconds allowed for a single command.
            connect_timeout: Seconds allowed to open a connection.

        Returns:
            RedisCounterStore bound to a new client.
        """
        client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=connect_timeout,
        )
        logger.debug("counter_store.redis_client_created")
        return cls(client)

    def _wrap(self, operation: str, exc: Exception) -> CounterStoreError:
        return CounterStoreError(
            code="counter_store_unavailable",
            message=f"Counter store {operation} failed: {type(exc).__name__}",
            details={"backend": "redis", "operation": operation},
        )

    async def get(self, key: str) -> int | None:
        try:
            raw = await self._client.get(key)
        except _STORE_FAILURES as exc:
            raise self._wrap("get", exc) from exc
        if raw is None:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise self._wrap("get", exc) from exc

    async def set(self, key: str, value: int, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, int(value), ex=ttl_seconds)
        except _STORE_FAILURES as exc:
            raise self._wrap("set", exc) from exc

    async def incr(self, key: str) -> int:
        try:
            return int(await self._client.incr(key))
        except _STORE_FAILURES as exc:
            raise self._wrap("incr", exc) from exc

    async def ttl(self, key: str) -> int:
        try:
            return int(await self._client.ttl(key))
        except _STORE_FAILURES as exc:
            raise self._wrap("ttl", exc) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
        logger.debug("counter_store.redis_client_closed")
