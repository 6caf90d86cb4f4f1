"""Counter store adapters.

The rate limiter depends on the small async contract in ``base`` so the
shared store (Redis in production) can be replaced by the in-memory store in
development and tests.
"""

from packhub.adapters.counter_store.base import AbstractCounterStore
from packhub.adapters.counter_store.factory import create_counter_store
from packhub.adapters.counter_store.in_memory import InMemoryCounterStore
from packhub.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
