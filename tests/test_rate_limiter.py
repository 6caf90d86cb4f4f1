"""Tests for the fixed-window rate limiter.

The limiter and the in-memory store share one fake clock, so window expiry
is driven by ``fake_time.advance`` rather than sleeping.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from packhub.adapters.counter_store.base import AbstractCounterStore, TTL_NO_EXPIRY
from packhub.adapters.counter_store.in_memory import InMemoryCounterStore
from packhub.core.errors import CounterStoreError
from packhub.services.identifiers import RequestAttributes
from packhub.services.policies import RateLimitPolicy
from packhub.services.rate_limiter import RateLimitDecision, RateLimiter, hash_limiter_key


@pytest.fixture
def policy() -> RateLimitPolicy:
    return RateLimitPolicy.generic("test", limit=5, window_seconds=60)


@pytest.fixture
def limiter(store: InMemoryCounterStore, fake_time) -> RateLimiter:
    return RateLimiter(store, clock=fake_time)


@pytest.fixture
def attrs() -> RequestAttributes:
    return RequestAttributes(ip="203.0.113.7", path="/api/comments")


def failing_store(**side_effects) -> AsyncMock:
    """Mock store whose listed operations raise."""
    mock = AsyncMock(spec=AbstractCounterStore)
    mock.get.return_value = None
    mock.ttl.return_value = 60
    for operation, exc in side_effects.items():
        getattr(mock, operation).side_effect = exc
    return mock


class TestWindowCounting:
    @pytest.mark.asyncio
    async def test_five_calls_allowed_then_sixth_denied(self, limiter, policy, attrs) -> None:
        remaining = []
        for _ in range(5):
            decision = await limiter.check(policy, attrs)
            assert decision.success is True
            remaining.append(decision.remaining)

        denied = await limiter.check(policy, attrs)

        assert remaining == [4, 3, 2, 1, 0]
        assert denied.success is False
        assert denied.remaining == 0
        assert denied.limit == 5

    @pytest.mark.asyncio
    async def test_first_call_sets_window_expiry(self, limiter, policy, attrs, store) -> None:
        decision = await limiter.check(policy, attrs)

        key = policy.key_for(attrs)
        assert await store.get(key) == 1
        assert await store.ttl(key) == 60
        assert decision.reset_at == 1_000 + 60

    @pytest.mark.asyncio
    async def test_reset_at_follows_remaining_ttl(self, limiter, policy, attrs, fake_time) -> None:
        first = await limiter.check(policy, attrs)
        fake_time.advance(20)
        second = await limiter.check(policy, attrs)

        assert second.reset_at == first.reset_at

    @pytest.mark.asyncio
    async def test_denied_reports_retry_after(self, limiter, policy, attrs, fake_time) -> None:
        for _ in range(5):
            await limiter.check(policy, attrs)
        fake_time.advance(45)

        denied = await limiter.check(policy, attrs)

        assert denied.success is False
        assert denied.retry_after_seconds(fake_time()) == 15

    @pytest.mark.asyncio
    async def test_window_expiry_restores_budget(self, limiter, policy, attrs, fake_time) -> None:
        for _ in range(6):
            await limiter.check(policy, attrs)

        fake_time.advance(60)
        decision = await limiter.check(policy, attrs)

        assert decision.success is True
        assert decision.remaining == 4

    @pytest.mark.asyncio
    async def test_distinct_identifiers_have_independent_windows(
        self, limiter, policy
    ) -> None:
        alice = RequestAttributes(ip="10.0.0.1", path="/api/comments")
        bob = RequestAttributes(ip="10.0.0.2", path="/api/comments")

        for _ in range(6):
            await limiter.check(policy, alice)
        bob_decision = await limiter.check(policy, bob)

        assert (await limiter.check(policy, alice)).success is False
        assert bob_decision.success is True
        assert bob_decision.remaining == 4

    @pytest.mark.asyncio
    async def test_same_ip_different_paths_are_separate(self, limiter, policy) -> None:
        for _ in range(5):
            await limiter.check(policy, RequestAttributes(ip="10.0.0.1", path="/a"))

        decision = await limiter.check(policy, RequestAttributes(ip="10.0.0.1", path="/b"))

        assert decision.success is True
        assert decision.remaining == 4

    @pytest.mark.asyncio
    async def test_policy_kinds_do_not_share_counters(self, limiter, store) -> None:
        auth = RateLimitPolicy.auth(limit=1, window_seconds=60)
        reset = RateLimitPolicy.password_reset(limit=1, window_seconds=60)
        attrs = RequestAttributes(ip="10.0.0.1", identity="a@example.com")

        await limiter.check(auth, attrs)
        decision = await limiter.check(reset, attrs)

        assert decision.success is True
        assert await store.get("auth-rate-limit:a@example.com:10.0.0.1") == 1
        assert await store.get("pwd-reset-rate-limit:a@example.com:10.0.0.1") == 1

    @pytest.mark.asyncio
    async def test_limit_of_one(self, limiter, attrs) -> None:
        single = RateLimitPolicy.generic("single", limit=1, window_seconds=10)

        first = await limiter.check(single, attrs)
        second = await limiter.check(single, attrs)

        assert first.success is True
        assert first.remaining == 0
        assert second.success is False


class TestStoreEdgeCases:
    @pytest.mark.asyncio
    async def test_key_without_expiry_is_rearmed(self, limiter, policy, attrs, store) -> None:
        key = policy.key_for(attrs)
        await store.incr(key)
        assert await store.ttl(key) == TTL_NO_EXPIRY

        decision = await limiter.check(policy, attrs)

        assert decision.success is True
        assert decision.remaining == 3
        assert await store.ttl(key) == 60

    @pytest.mark.asyncio
    async def test_key_expiring_between_get_and_incr_starts_new_window(
        self, policy, attrs
    ) -> None:
        store = AsyncMock(spec=AbstractCounterStore)
        store.get.return_value = 3
        store.incr.return_value = 1
        limiter = RateLimiter(store, clock=lambda: 500.0)

        decision = await limiter.check(policy, attrs)

        assert decision.success is True
        assert decision.remaining == 4
        store.set.assert_awaited_once_with(policy.key_for(attrs), 1, 60)

    @pytest.mark.asyncio
    async def test_incr_past_limit_is_denied(self, policy, attrs) -> None:
        store = AsyncMock(spec=AbstractCounterStore)
        store.get.return_value = 4
        store.incr.return_value = 6
        store.ttl.return_value = 30
        limiter = RateLimiter(store, clock=lambda: 500.0)

        decision = await limiter.check(policy, attrs)

        assert decision.success is False
        assert decision.remaining == 0
        assert decision.reset_at == 530

    @pytest.mark.asyncio
    async def test_missing_ttl_falls_back_to_window(self, policy, attrs) -> None:
        store = AsyncMock(spec=AbstractCounterStore)
        store.get.return_value = 5
        store.ttl.return_value = -2
        limiter = RateLimiter(store, clock=lambda: 500.0)

        decision = await limiter.check(policy, attrs)

        assert decision.success is False
        assert decision.reset_at == 560


class TestFailOpen:
    @pytest.mark.asyncio
    async def test_incr_failure_allows_request(self, policy, attrs, caplog) -> None:
        store = failing_store(incr=CounterStoreError(code="counter_store_unavailable", message="down"))
        store.get.return_value = 2
        limiter = RateLimiter(store, clock=lambda: 500.0)

        with caplog.at_level(logging.ERROR, logger="packhub.services.rate_limiter"):
            decision = await limiter.check(policy, attrs)

        assert decision.success is True
        assert decision.remaining == policy.limit - 1
        assert decision.reset_at == 560
        assert decision.fail_open is True
        assert any(r.getMessage() == "rate_limit.store_error" for r in caplog.records)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["get", "set", "ttl"])
    async def test_any_store_failure_allows_request(self, policy, attrs, operation) -> None:
        store = failing_store(**{operation: ConnectionError("refused")})
        if operation == "ttl":
            store.get.return_value = 5
        limiter = RateLimiter(store)

        decision = await limiter.check(policy, attrs)

        assert decision.success is True
        assert decision.fail_open is True

    @pytest.mark.asyncio
    async def test_store_error_log_hides_raw_key(self, policy, attrs, caplog) -> None:
        limiter = RateLimiter(failing_store(get=RuntimeError("boom")))

        with caplog.at_level(logging.ERROR, logger="packhub.services.rate_limiter"):
            await limiter.check(policy, attrs)

        record = caplog.records[-1]
        assert record.key_hash == hash_limiter_key(policy.key_for(attrs))
        assert attrs.ip not in record.key_hash


class TestDisabled:
    @pytest.mark.asyncio
    async def test_disabled_limiter_never_touches_store(self, policy, attrs) -> None:
        store = AsyncMock(spec=AbstractCounterStore)
        limiter = RateLimiter(store, enabled=False)

        for _ in range(10):
            decision = await limiter.check(policy, attrs)
            assert decision.success is True
            assert decision.remaining == policy.limit

        store.get.assert_not_awaited()
        assert limiter.enabled is False


class TestRateLimitDecision:
    def test_retry_after_never_negative(self) -> None:
        decision = RateLimitDecision(success=False, limit=5, remaining=0, reset_at=100)

        assert decision.retry_after_seconds(now=150.0) == 0

    def test_retry_after_rounds_up(self) -> None:
        decision = RateLimitDecision(success=False, limit=5, remaining=0, reset_at=100)

        assert decision.retry_after_seconds(now=89.5) == 11

    def test_hash_limiter_key_is_stable_and_short(self) -> None:
        assert hash_limiter_key("rate-limit:1.2.3.4:/x") == hash_limiter_key("rate-limit:1.2.3.4:/x")
        assert len(hash_limiter_key("anything")) == 16
