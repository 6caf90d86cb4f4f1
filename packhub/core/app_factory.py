"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated apps with their own counter store and repositories.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from packhub.adapters.community.base import AbstractAccountDirectory, AbstractContentRepository
from packhub.adapters.community.in_memory import (
    InMemoryAccountDirectory,
    InMemoryContentRepository,
)
from packhub.adapters.counter_store.base import AbstractCounterStore
from packhub.adapters.counter_store.factory import create_counter_store
from packhub.api.routes import auth_router, comments_router, health_router, messages_router
from packhub.core.config import Settings, settings as default_settings
from packhub.core.exception_handlers import setup_exception_handlers
from packhub.core.logging import configure_logging
from packhub.core.middleware import (
    build_auth_paths_middleware,
    build_security_headers_middleware,
    request_id_middleware,
)
from packhub.core.openapi import apply_openapi_customizations
from packhub.services.content_service import ContentService
from packhub.services.policies import PolicyRegistry
from packhub.services.rate_limiter import RateLimiter
from packhub.services.spam_filter import SpamFilter

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    *,
    counter_store: AbstractCounterStore | None = None,
    content: AbstractContentRepository | None = None,
    accounts: AbstractAccountDirectory | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the global instance.
        counter_store: Counter store override (tests pass an in-memory store).
        content: Content repository override.
        accounts: Account directory override.
        configure_logs: Install the root log handler.

    Returns:
        Configured FastAPI app.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    store = counter_store or create_counter_store(cfg.counter_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "counter_store": type(store).__name__,
                "rate_limit_enabled": cfg.rate_limit.enabled,
            },
        )
        try:
            yield
        finally:
            await store.aclose()
            logger.info("app.shutdown")

    app = FastAPI(
        title="PackHub API",
        description=(
            "Community texture-pack API: live chat, comments and votes, signup "
            "and password reset, guarded by a shared fixed-window rate limiter "
            "and spam heuristics."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.rate_limiter = RateLimiter(store, enabled=cfg.rate_limit.enabled)
    app.state.policies = PolicyRegistry.from_settings(cfg.rate_limit)
    app.state.spam_filter = SpamFilter.from_settings(cfg.spam)
    app.state.content_service = ContentService(
        repository=content or InMemoryContentRepository(),
        spam_filter=app.state.spam_filter,
        max_message_chars=cfg.app.max_message_chars,
        max_comment_chars=cfg.app.max_comment_chars,
        message_retention_days=cfg.app.message_retention_days,
    )
    app.state.accounts = accounts or InMemoryAccountDirectory(
        reset_token_ttl_seconds=cfg.app.reset_token_ttl_seconds,
    )

    # Middleware (last added runs first)
    app.middleware("http")(build_auth_paths_middleware(cfg.rate_limit.auth_paths))
    app.middleware("http")(build_security_headers_middleware(cfg.security))
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(messages_router)
    app.include_router(comments_router)
    app.include_router(auth_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
