"""Tests for rate limit policies and the policy registry."""

import pytest

from packhub.core.config import RateLimitSettings
from packhub.services.identifiers import RequestAttributes, identity_and_path
from packhub.services.policies import PolicyKind, PolicyRegistry, RateLimitPolicy


class TestRateLimitPolicy:
    def test_generic_key(self) -> None:
        policy = RateLimitPolicy.generic("comment", limit=5, window_seconds=60)
        attrs = RequestAttributes(ip="1.2.3.4", path="/api/comments")

        assert policy.kind is PolicyKind.GENERIC
        assert policy.key_for(attrs) == "rate-limit:1.2.3.4:/api/comments"

    def test_auth_key(self) -> None:
        policy = RateLimitPolicy.auth(limit=5, window_seconds=60)
        attrs = RequestAttributes(ip="1.2.3.4", identity="Steve")

        assert policy.key_for(attrs) == "auth-rate-limit:steve:1.2.3.4"

    def test_password_reset_key(self) -> None:
        policy = RateLimitPolicy.password_reset(limit=3, window_seconds=300)
        attrs = RequestAttributes(ip="1.2.3.4", identity="a@b.io")

        assert policy.key_for(attrs) == "pwd-reset-rate-limit:a@b.io:1.2.3.4"

    @pytest.mark.parametrize(
        "limit, window",
        [(0, 60), (5, 0), (-1, 60), (5, -10), (2.5, 60), (True, 60)],
    )
    def test_invalid_numbers_rejected(self, limit, window) -> None:
        with pytest.raises(ValueError):
            RateLimitPolicy.generic("bad", limit=limit, window_seconds=window)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValueError):
            RateLimitPolicy("sliding", "bad", 5, 60)

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            RateLimitPolicy.generic("", limit=5, window_seconds=60)

    def test_policy_is_immutable(self) -> None:
        policy = RateLimitPolicy.generic("comment", limit=5, window_seconds=60)

        with pytest.raises(AttributeError):
            policy.limit = 10


class TestPolicyRegistry:
    def test_defaults(self) -> None:
        registry = PolicyRegistry.from_settings(RateLimitSettings())

        assert (registry.comment.limit, registry.comment.window_seconds) == (5, 60)
        assert (registry.vote.limit, registry.vote.window_seconds) == (20, 60)
        assert (registry.password_reset.limit, registry.password_reset.window_seconds) == (3, 300)
        assert registry.message.identifier is identity_and_path
        assert registry.auth.kind is PolicyKind.AUTH

    def test_settings_override(self) -> None:
        registry = PolicyRegistry.from_settings(RateLimitSettings(vote_limit=2, vote_window_seconds=10))

        assert registry.vote.limit == 2
        assert registry.vote.window_seconds == 10

    def test_get_by_name(self) -> None:
        registry = PolicyRegistry.from_settings(RateLimitSettings())

        assert registry.get("vote") is registry.vote

    def test_get_unknown_raises(self) -> None:
        registry = PolicyRegistry.from_settings(RateLimitSettings())

        with pytest.raises(KeyError):
            registry.get("get")
