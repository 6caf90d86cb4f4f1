"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that might build settings,
so no test ever needs a running Redis.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("COUNTER_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from packhub.adapters.counter_store.in_memory import InMemoryCounterStore
from packhub.core.app_factory import create_app
from packhub.core.config import Settings


class FakeTime:
    """Deterministic clock shared by the store and the limiter."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def store(fake_time: FakeTime) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=fake_time)


@pytest.fixture
def app(store: InMemoryCounterStore) -> FastAPI:
    """Fresh app per test with its own counter store and repositories."""
    return create_app(Settings(), counter_store=store, configure_logs=False)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
