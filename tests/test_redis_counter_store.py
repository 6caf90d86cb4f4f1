"""Unit tests for the Redis counter store and the store factory.

The Redis client is replaced by AsyncMock; no server is needed.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from packhub.adapters.counter_store.factory import create_counter_store
from packhub.adapters.counter_store.in_memory import InMemoryCounterStore
from packhub.adapters.counter_store.redis_store import RedisCounterStore
from packhub.core.config import CounterStoreSettings
from packhub.core.errors import CounterStoreError, ValidationAppError


@pytest.fixture
def redis_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def redis_store(redis_client: AsyncMock) -> RedisCounterStore:
    return RedisCounterStore(redis_client)


class TestRedisCounterStoreCommands:
    """Each contract method maps to one Redis command."""

    @pytest.mark.asyncio
    async def test_get_parses_integer(self, redis_store, redis_client) -> None:
        redis_client.get.return_value = "3"

        assert await redis_store.get("rate-limit:k") == 3
        redis_client.get.assert_awaited_once_with("rate-limit:k")

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, redis_store, redis_client) -> None:
        redis_client.get.return_value = None

        assert await redis_store.get("k") is None

    @pytest.mark.asyncio
    async def test_set_uses_expiry(self, redis_store, redis_client) -> None:
        await redis_store.set("k", 1, 60)

        redis_client.set.assert_awaited_once_with("k", 1, ex=60)

    @pytest.mark.asyncio
    async def test_incr_returns_new_value(self, redis_store, redis_client) -> None:
        redis_client.incr.return_value = 4

        assert await redis_store.incr("k") == 4

    @pytest.mark.asyncio
    async def test_ttl_passes_sentinels_through(self, redis_store, redis_client) -> None:
        redis_client.ttl.return_value = -2

        assert await redis_store.ttl("k") == -2

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, redis_store, redis_client) -> None:
        await redis_store.aclose()

        redis_client.aclose.assert_awaited_once()


class TestRedisCounterStoreFailures:
    """Transport errors surface as CounterStoreError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation, args",
        [
            ("get", ("k",)),
            ("set", ("k", 1, 60)),
            ("incr", ("k",)),
            ("ttl", ("k",)),
        ],
    )
    async def test_connection_error_is_wrapped(
        self, redis_store, redis_client, operation, args
    ) -> None:
        getattr(redis_client, operation).side_effect = RedisConnectionError("refused")

        with pytest.raises(CounterStoreError) as exc_info:
            await getattr(redis_store, operation)(*args)

        assert exc_info.value.code == "counter_store_unavailable"
        assert exc_info.value.details["operation"] == operation

    @pytest.mark.asyncio
    async def test_timeout_is_wrapped(self, redis_store, redis_client) -> None:
        redis_client.incr.side_effect = RedisTimeoutError("slow")

        with pytest.raises(CounterStoreError):
            await redis_store.incr("k")

    @pytest.mark.asyncio
    async def test_non_integer_value_is_wrapped(self, redis_store, redis_client) -> None:
        redis_client.get.return_value = "not-a-number"

        with pytest.raises(CounterStoreError):
            await redis_store.get("k")


class TestCreateCounterStore:
    def test_memory_backend(self) -> None:
        store = create_counter_store(CounterStoreSettings(backend="memory"))

        assert isinstance(store, InMemoryCounterStore)

    def test_redis_backend(self) -> None:
        store = create_counter_store(
            CounterStoreSettings(backend="redis", url="redis://localhost:6390/0")
        )

        assert isinstance(store, RedisCounterStore)

    def test_unknown_backend_raises(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_counter_store(CounterStoreSettings(backend="memcached"))

        assert exc_info.value.code == "counter_store_unknown_backend"
