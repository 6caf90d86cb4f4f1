"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_message_chars: int = Field(
        500,
        description="Maximum chat message length in characters",
        ge=1,
    )
    max_comment_chars: int = Field(
        500,
        description="Maximum comment length in characters",
        ge=1,
    )
    message_retention_days: int = Field(
        7,
        description="Chat messages older than this are hidden and pruned",
        ge=1,
    )
    reset_token_ttl_seconds: int = Field(
        3600,
        description="Lifetime of password reset tokens",
        ge=60,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CounterStoreSettings(BaseSettings):
    """Shared counter store used by the rate limiter.

    ``redis`` is the production backend. ``memory`` keeps counters in the
    current process only and is meant for local development and tests.
    """

    backend: str = Field(
        "redis",
        description="Counter store backend: redis or memory",
    )
    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (use rediss:// outside trusted networks)",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Timeout for a single store round-trip",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        2.0,
        description="Timeout for establishing the store connection",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="COUNTER_STORE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Limits and windows for every named rate limit policy."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting (disabled limiter allows everything)",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on allowed responses",
    )

    default_limit: int = Field(5, ge=1)
    default_window_seconds: int = Field(60, ge=1)
    comment_limit: int = Field(5, ge=1)
    comment_window_seconds: int = Field(60, ge=1)
    vote_limit: int = Field(20, ge=1)
    vote_window_seconds: int = Field(60, ge=1)
    message_limit: int = Field(5, ge=1)
    message_window_seconds: int = Field(60, ge=1)
    auth_limit: int = Field(5, ge=1)
    auth_window_seconds: int = Field(60, ge=1)
    password_reset_limit: int = Field(3, ge=1)
    password_reset_window_seconds: int = Field(300, ge=1)
    auth_paths_limit: int = Field(5, ge=1)
    auth_paths_window_seconds: int = Field(60, ge=1)

    auth_paths: list[str] = Field(
        default_factory=lambda: [
            "/api/user",
            "/api/request-password-reset",
            "/api/reset-password",
        ],
        description="Path prefixes guarded by the auth-path middleware",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class SpamSettings(BaseSettings):
    """Thresholds for the spam heuristics applied to user text."""

    repeated_char_threshold: int = Field(
        5,
        description="Identical consecutive characters that count as spam",
        ge=2,
    )
    caps_min_length: int = Field(
        5,
        description="Shorter all-caps strings are treated as acronyms",
        ge=1,
    )
    special_char_ratio: float = Field(
        0.3,
        description="Max ratio of non-alphanumeric, non-space characters",
        gt=0,
        le=1,
    )
    url_threshold: int = Field(
        2,
        description="Number of URLs that counts as spam",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="SPAM_",
        case_sensitive=False,
    )


class SecuritySettings(BaseSettings):
    """Security response headers."""

    headers_enabled: bool = Field(
        True,
        description="Attach security headers to every response",
    )
    content_security_policy: str = Field(
        "default-src 'self'; script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; img-src 'self' data: https://cdn.discordapp.com; "
        "font-src 'self' data:; connect-src 'self' https://discord.com;",
        description="Value of the Content-Security-Policy header",
    )

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None, description="Log file when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    counter_store: CounterStoreSettings = Field(default_factory=CounterStoreSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    spam: SpamSettings = Field(default_factory=SpamSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
