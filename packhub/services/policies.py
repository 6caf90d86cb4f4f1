"""Rate limit policies.

A policy is an immutable record of limit, window and identifier strategy.
The set of policy kinds is closed; each kind owns a key namespace so
counters of different kinds never collide.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from packhub.core.config import RateLimitSettings
from packhub.services.identifiers import (
    IdentifierStrategy,
    RequestAttributes,
    identity_and_ip,
    identity_and_path,
    ip_and_path,
    ip_user_agent_and_path,
)


class PolicyKind(str, Enum):
    """Closed set of policy kinds."""

    GENERIC = "generic"
    AUTH = "auth"
    PASSWORD_RESET = "password_reset"


KEY_NAMESPACES: dict[PolicyKind, str] = {
    PolicyKind.GENERIC: "rate-limit",
    PolicyKind.AUTH: "auth-rate-limit",
    PolicyKind.PASSWORD_RESET: "pwd-reset-rate-limit",
}


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limit/window pair plus the strategy deriving the counter key.

    Attributes:
        kind: Policy kind; selects the key namespace.
        name: Short name used in logs.
        limit: Maximum requests allowed per window.
        window_seconds: Fixed window size in seconds.
        identifier: Strategy turning request attributes into an identifier.

    Raises:
        ValueError: If limit or window_seconds are invalid.
    """

    kind: PolicyKind
    name: str
    limit: int
    window_seconds: int
    identifier: IdentifierStrategy = ip_and_path

    def __post_init__(self) -> None:
        if not isinstance(self.kind, PolicyKind):
            raise ValueError(f"unknown policy kind: {self.kind!r}")
        if not self.name:
            raise ValueError("name must be a non-empty string")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise ValueError("limit must be an integer >= 1")
        if (
            isinstance(self.window_seconds, bool)
            or not isinstance(self.window_seconds, int)
            or self.window_seconds < 1
        ):
            raise ValueError("window_seconds must be an integer >= 1")
        if not callable(self.identifier):
            raise ValueError("identifier must be callable")

    @property
    def namespace(self) -> str:
        return KEY_NAMESPACES[self.kind]

    def key_for(self, attrs: RequestAttributes) -> str:
        """Build the counter key for a request."""
        return f"{self.namespace}:{self.identifier(attrs)}"

    @classmethod
    def generic(
        cls,
        name: str,
        *,
        limit: int,
        window_seconds: int,
        identifier: IdentifierStrategy = ip_and_path,
    ) -> "RateLimitPolicy":
        return cls(PolicyKind.GENERIC, name, limit, window_seconds, identifier)

    @classmethod
    def auth(cls, *, limit: int, window_seconds: int) -> "RateLimitPolicy":
        return cls(PolicyKind.AUTH, "auth", limit, window_seconds, identity_and_ip)

    @classmethod
    def password_reset(cls, *, limit: int, window_seconds: int) -> "RateLimitPolicy":
        return cls(
            PolicyKind.PASSWORD_RESET,
            "password_reset",
            limit,
            window_seconds,
            identity_and_ip,
        )


@dataclass(frozen=True)
class PolicyRegistry:
    """Named policies used by the HTTP layer."""

    default: RateLimitPolicy
    comment: RateLimitPolicy
    vote: RateLimitPolicy
    message: RateLimitPolicy
    auth: RateLimitPolicy
    password_reset: RateLimitPolicy
    auth_paths: RateLimitPolicy

    def get(self, name: str) -> RateLimitPolicy:
        """Look up a policy by field name.

        Raises:
            KeyError: If no policy has that name.
        """
        policy = getattr(self, name, None)
        if not isinstance(policy, RateLimitPolicy):
            raise KeyError(name)
        return policy

    @classmethod
    def from_settings(cls, cfg: RateLimitSettings) -> "PolicyRegistry":
        return cls(
            default=RateLimitPolicy.generic(
                "default",
                limit=cfg.default_limit,
                window_seconds=cfg.default_window_seconds,
            ),
            comment=RateLimitPolicy.generic(
                "comment",
                limit=cfg.comment_limit,
                window_seconds=cfg.comment_window_seconds,
            ),
            vote=RateLimitPolicy.generic(
                "vote",
                limit=cfg.vote_limit,
                window_seconds=cfg.vote_window_seconds,
            ),
            message=RateLimitPolicy.generic(
                "message",
                limit=cfg.message_limit,
                window_seconds=cfg.message_window_seconds,
                identifier=identity_and_path,
            ),
            auth=RateLimitPolicy.auth(
                limit=cfg.auth_limit,
                window_seconds=cfg.auth_window_seconds,
            ),
            password_reset=RateLimitPolicy.password_reset(
                limit=cfg.password_reset_limit,
                window_seconds=cfg.password_reset_window_seconds,
            ),
            auth_paths=RateLimitPolicy.generic(
                "auth_paths",
                limit=cfg.auth_paths_limit,
                window_seconds=cfg.auth_paths_window_seconds,
                identifier=ip_user_agent_and_path,
            ),
        )
