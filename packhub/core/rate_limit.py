"""Rate limiting glue between FastAPI and the window policy engine.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on dependency functions only.
- Injected state: the limiter and policy registry live on ``app.state``;
  tests swap the counter store without patching globals.
- Fail-open: store outages are absorbed by the engine, so nothing here can
  turn an infrastructure failure into a 5xx.

Two entry shapes share one engine:
- direct checks (``check_rate_limit`` and the auth/reset helpers) returning
  the decision for handlers that build their own responses;
- ``wrap_with_rate_limit`` returning an interceptor that yields a finished
  429 response or None to continue, plus the ``enforce_rate_limit``
  dependency built on the same pieces.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from packhub.core.config import settings
from packhub.services.identifiers import RequestAttributes, client_ip
from packhub.services.policies import PolicyRegistry, RateLimitPolicy
from packhub.services.rate_limiter import RateLimitDecision, RateLimiter

DEFAULT_DENIAL_MESSAGE = "Too many requests, please try again later."

RateLimitInterceptor = Callable[[Request, RateLimiter], Awaitable[JSONResponse | None]]


def get_rate_limiter(request: Request) -> RateLimiter:
    """FastAPI dependency returning the app's rate limiter."""
    return request.app.state.rate_limiter


def get_policies(request: Request) -> PolicyRegistry:
    """FastAPI dependency returning the app's policy registry."""
    return request.app.state.policies


def request_attributes(request: Request, identity: str | None = None) -> RequestAttributes:
    """Read the identifier inputs from a request without modifying it."""
    return RequestAttributes(
        ip=client_ip(request.headers),
        user_agent=request.headers.get("user-agent"),
        path=request.url.path,
        identity=identity,
    )


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Informational headers for an allowed response."""
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset_at),
    }


def denial_headers(decision: RateLimitDecision, now: float | None = None) -> dict[str, str]:
    """Headers of a 429 response."""
    retry_after = decision.retry_after_seconds(time.time() if now is None else now)
    return {
        "Retry-After": str(retry_after),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(decision.reset_at),
    }


def build_rate_limit_response(
    decision: RateLimitDecision,
    message: str = DEFAULT_DENIAL_MESSAGE,
) -> JSONResponse:
    """Ready-made 429 response for a denied decision."""
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "message": message,
            "error": {
                "code": "rate_limit_exceeded",
                "message": message,
                "limit": decision.limit,
                "remaining": 0,
                "reset": decision.reset_at,
            },
        },
        headers=denial_headers(decision),
    )


async def check_rate_limit(
    request: Request,
    policy: RateLimitPolicy,
    limiter: RateLimiter,
    *,
    identity: str | None = None,
) -> RateLimitDecision:
    """Generic per-route check; the caller decides what to do with the result."""
    return await limiter.check(policy, request_attributes(request, identity))


async def check_auth_rate_limit(
    limiter: RateLimiter,
    policies: PolicyRegistry,
    ip: str | None,
    identity: str | None,
) -> RateLimitDecision:
    """Stricter login/signup check keyed by identity and IP."""
    return await limiter.check(policies.auth, RequestAttributes(ip=ip, identity=identity))


async def check_password_reset_rate_limit(
    limiter: RateLimiter,
    policies: PolicyRegistry,
    ip: str | None,
    identity: str | None,
) -> RateLimitDecision:
    """Password reset check keyed by email (or a fixed label) and IP."""
    return await limiter.check(
        policies.password_reset, RequestAttributes(ip=ip, identity=identity)
    )


def wrap_with_rate_limit(
    policy: RateLimitPolicy,
    *,
    message: str = DEFAULT_DENIAL_MESSAGE,
) -> RateLimitInterceptor:
    """Build an interceptor enforcing ``policy``.

    Args:
        policy: Policy to enforce.
        message: Human-readable text of the 429 body.

    Returns:
        Async callable ``(request, limiter)`` returning a 429 JSONResponse when
        the caller is over the limit, or None when the request may continue.
    """

    async def interceptor(request: Request, limiter: RateLimiter) -> JSONResponse | None:
        decision = await check_rate_limit(request, policy, limiter)
        if decision.success:
            return None
        return build_rate_limit_response(decision, message)

    return interceptor


def enforce_rate_limit(
    policy_name: str,
    *,
    message: str = DEFAULT_DENIAL_MESSAGE,
) -> Callable[[Request, Response], Awaitable[None]]:
    """Dependency factory enforcing a named policy from the registry.

    Usage:
        @router.post("/comments", dependencies=[Depends(enforce_rate_limit("comment"))])

    Raises:
        KeyError: At request time if ``policy_name`` is not registered.
    """

    async def dependency(request: Request, response: Response) -> None:
        policy = get_policies(request).get(policy_name)
        decision = await check_rate_limit(request, policy, get_rate_limiter(request))
        apply_decision(decision, response, message=message)

    return dependency


def apply_decision(
    decision: RateLimitDecision,
    response: Response,
    *,
    message: str = DEFAULT_DENIAL_MESSAGE,
) -> None:
    """Raise a 429 for a denied decision, else annotate the response.

    Raises:
        HTTPException: 429 Too Many Requests when the decision denies.
    """
    if not decision.success:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=message,
            headers=denial_headers(decision),
        )

    if settings.rate_limit.include_headers:
        response.headers.update(rate_limit_headers(decision))
