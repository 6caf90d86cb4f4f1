"""Fixed-window rate limiter over a shared counter store.

The limiter holds no counters itself: every check is a round-trip to the
injected store, so all serving processes share one view of each window.

Algorithm per check:
1. Derive the key from the policy and request attributes.
2. Read the counter.
3. Absent: start the window with SET key 1 EX window.
4. Below the limit: INCR and judge by the returned value.
5. At or above the limit: deny and report the remaining TTL.

The read and the write are separate round-trips. Callers that all observe an
absent key at the same instant may each start the window, which admits a
bounded burst. The INCR path uses the value the store returns, so it never
admits past the limit.

Store failures fail open: the error is logged and the request is allowed.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from packhub.adapters.counter_store.base import TTL_NO_EXPIRY, AbstractCounterStore
from packhub.services.identifiers import RequestAttributes
from packhub.services.policies import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        success: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when denied).
        reset_at: UNIX epoch seconds when the current window ends.
        fail_open: True when the store failed and the request was let through.
    """

    success: bool
    limit: int
    remaining: int
    reset_at: int
    fail_open: bool = False

    def retry_after_seconds(self, now: float | None = None) -> int:
        """Seconds until the window resets, never negative."""
        current = time.time() if now is None else now
        return max(0, int(math.ceil(self.reset_at - current)))


def hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing emails or IPs."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _ceil_epoch(now: float) -> int:
    return int(math.ceil(now))


class RateLimiter:
    """Window policy engine.

    Args:
        store: Shared counter store.
        enabled: When False every check is allowed without touching the store.
        clock: Time source returning UNIX seconds.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._clock = clock

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def check(
        self, policy: RateLimitPolicy, attrs: RequestAttributes
    ) -> RateLimitDecision:
        """Consume one request from the caller's budget under ``policy``.

        Never raises for store failures; see module docstring.

        Args:
            policy: Policy supplying limit, window and identifier strategy.
            attrs: Attributes of the current request.

        Returns:
            RateLimitDecision describing whether the request may proceed.
        """
        now = self._clock()

        if not self._enabled:
            return RateLimitDecision(
                success=True,
                limit=policy.limit,
                remaining=policy.limit,
                reset_at=_ceil_epoch(now) + policy.window_seconds,
            )

        key = policy.key_for(attrs)
        try:
            decision = await self._consume(policy, key, now)
        except Exception as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "policy": policy.name,
                    "key_hash": hash_limiter_key(key),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return self._fail_open(policy, now)

        self._log_decision(policy, key, decision, now)
        return decision

    async def _consume(
        self, policy: RateLimitPolicy, key: str, now: float
    ) -> RateLimitDecision:
        count = await self._store.get(key)

        if count is None:
            await self._store.set(key, 1, policy.window_seconds)
            return RateLimitDecision(
                success=True,
                limit=policy.limit,
                remaining=policy.limit - 1,
                reset_at=_ceil_epoch(now) + policy.window_seconds,
            )

        if count < policy.limit:
            new_count = await self._store.incr(key)
            if new_count == 1:
                # The window expired between GET and INCR; INCR recreated the
                # key without expiry.
                await self._store.set(key, 1, policy.window_seconds)
                return RateLimitDecision(
                    success=True,
                    limit=policy.limit,
                    remaining=policy.limit - 1,
                    reset_at=_ceil_epoch(now) + policy.window_seconds,
                )

            reset_at = await self._reset_at(policy, key, now, new_count)
            if new_count > policy.limit:
                return RateLimitDecision(
                    success=False,
                    limit=policy.limit,
                    remaining=0,
                    reset_at=reset_at,
                )
            return RateLimitDecision(
                success=True,
                limit=policy.limit,
                remaining=max(0, policy.limit - new_count),
                reset_at=reset_at,
            )

        reset_at = await self._reset_at(policy, key, now, count)
        return RateLimitDecision(
            success=False,
            limit=policy.limit,
            remaining=0,
            reset_at=reset_at,
        )

    async def _reset_at(
        self, policy: RateLimitPolicy, key: str, now: float, count: int
    ) -> int:
        """Compute the window end from the key's TTL.

        A key left without expiry would block its caller forever, so it is
        re-armed with a fresh window.
        """
        ttl = await self._store.ttl(key)
        if ttl == TTL_NO_EXPIRY:
            await self._store.set(key, count, policy.window_seconds)
            ttl = policy.window_seconds
        elif ttl < 0:
            ttl = policy.window_seconds
        return _ceil_epoch(now) + ttl

    def _fail_open(self, policy: RateLimitPolicy, now: float) -> RateLimitDecision:
        return RateLimitDecision(
            success=True,
            limit=policy.limit,
            remaining=policy.limit - 1,
            reset_at=_ceil_epoch(now) + policy.window_seconds,
            fail_open=True,
        )

    def _log_decision(
        self,
        policy: RateLimitPolicy,
        key: str,
        decision: RateLimitDecision,
        now: float,
    ) -> None:
        fields = {
            "policy": policy.name,
            "key_hash": hash_limiter_key(key),
            "limit": decision.limit,
            "remaining": decision.remaining,
            "window_s": policy.window_seconds,
        }
        if decision.success:
            logger.debug("rate_limit.allowed", extra=fields)
            return

        fields["retry_after_s"] = decision.retry_after_seconds(now)
        logger.warning("rate_limit.exceeded", extra=fields)
