"""Factory pattern for creating counter store instances."""

from packhub.adapters.counter_store.base import AbstractCounterStore
from packhub.adapters.counter_store.in_memory import InMemoryCounterStore
from packhub.adapters.counter_store.redis_store import RedisCounterStore
from packhub.core.config import CounterStoreSettings
from packhub.core.errors import ValidationAppError


def create_counter_store(store_settings: CounterStoreSettings) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        store_settings: Resolved counter store settings.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = store_settings.backend.lower()

    if backend == "redis":
        return RedisCounterStore.from_url(
            store_settings.url,
            socket_timeout=store_settings.socket_timeout_seconds,
            connect_timeout=store_settings.connect_timeout_seconds,
        )

    if backend == "memory":
        return InMemoryCounterStore()

    raise ValidationAppError(
        code="counter_store_unknown_backend",
        message=(
            f"Unknown counter store backend: '{backend}'. Supported backends: redis, memory"
        ),
    )
