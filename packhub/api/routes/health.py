from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check.

    Does not touch the counter store: a store outage degrades rate limiting
    (fail-open) but leaves the service healthy.

    Returns:
        dict: ``status`` plus whether rate limiting is active.
    """

    limiter = request.app.state.rate_limiter
    return {
        "status": "ok",
        "rate_limiting": "enabled" if limiter.enabled else "disabled",
    }
