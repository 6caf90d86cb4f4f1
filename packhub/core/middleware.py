"""HTTP middleware: request correlation, auth-path throttling, security headers.

Registration order matters: FastAPI runs the middleware added last first.
``create_app`` adds the auth-path limiter first and the security headers
after it, so throttled 429s still receive the security headers, and the
request-id middleware last so every log line of the request is correlated.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response

from packhub.core.config import SecuritySettings, settings
from packhub.core.logging import clear_request_id, log_security_event, set_request_id
from packhub.core.rate_limit import get_policies, get_rate_limiter, wrap_with_rate_limit

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]
HttpMiddleware = Callable[[Request, CallNext], Awaitable[Response]]


def build_security_headers(cfg: SecuritySettings) -> dict[str, str]:
    """Static security headers attached to every response."""
    return {
        "Content-Security-Policy": cfg.content_security_policy,
        "X-XSS-Protection": "1; mode=block",
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
        "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    }


async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
    """HTTP middleware for request ID generation and propagation.

    Uses the incoming ``X-Request-ID`` header (name configurable via
    ``LOG_REQUEST_ID_HEADER``) or a fresh UUID, binds it for log correlation,
    and echoes it back together with the request duration.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def build_security_headers_middleware(cfg: SecuritySettings) -> HttpMiddleware:
    """Middleware layering the security headers onto every response."""

    headers = build_security_headers(cfg)

    async def security_headers_middleware(request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        if cfg.headers_enabled:
            for name, value in headers.items():
                response.headers[name] = value
        return response

    return security_headers_middleware


def build_auth_paths_middleware(
    paths: Iterable[str],
    *,
    message: str = "Too many requests, please try again later.",
) -> HttpMiddleware:
    """Throttle every request whose path starts with one of ``paths``.

    The ``auth_paths`` policy (IP plus user-agent prefix) is resolved from
    the app's registry on each request so tests can swap it.

    Args:
        paths: Path prefixes to guard.
        message: Text of the 429 body.

    Returns:
        HTTP middleware function.
    """

    prefixes = tuple(paths)

    async def auth_paths_middleware(request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if not prefixes or not path.startswith(prefixes):
            return await call_next(request)

        interceptor = wrap_with_rate_limit(get_policies(request).auth_paths, message=message)
        denied = await interceptor(request, get_rate_limiter(request))
        if denied is not None:
            log_security_event("AUTH_PATH_THROTTLED", path=path)
            return denied

        return await call_next(request)

    return auth_paths_middleware
