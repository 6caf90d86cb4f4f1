"""Rate limit identifier strategies.

An identifier scopes a counter to one caller (and optionally one route).
Strategies are pure functions of ``RequestAttributes``; missing attributes
fall back to sentinel strings so a strategy never fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

ANONYMOUS = "anonymous"
UNKNOWN = "unknown"

# Only a prefix of the user agent goes into the key to bound its length.
USER_AGENT_PREFIX_CHARS = 50


@dataclass(frozen=True)
class RequestAttributes:
    """Request data the identifier strategies may read.

    Attributes:
        ip: Client IP taken from forwarding headers, if any.
        user_agent: Raw User-Agent header, if any.
        path: Route path of the request.
        identity: Email or username supplied by the caller (auth flows).
    """

    ip: str | None = None
    user_agent: str | None = None
    path: str = "/"
    identity: str | None = None


IdentifierStrategy = Callable[[RequestAttributes], str]


def client_ip(headers: Mapping[str, str]) -> str | None:
    """Extract the client IP from proxy headers.

    The first entry of ``X-Forwarded-For`` wins, then ``X-Real-IP``.

    Args:
        headers: Case-insensitive request headers.

    Returns:
        The client IP or None when no forwarding header is present.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = (headers.get("x-real-ip") or "").strip()
    return real_ip or None


def normalize_identity(identity: str | None) -> str | None:
    """Lower-case and trim an email/username so casing can't dodge a limit."""
    if identity is None:
        return None
    normalized = identity.strip().lower()
    return normalized or None


def ip_and_path(attrs: RequestAttributes) -> str:
    """Default strategy: one counter per caller IP and route."""
    return f"{attrs.ip or ANONYMOUS}:{attrs.path}"


def ip_user_agent_and_path(attrs: RequestAttributes) -> str:
    """IP plus a user-agent prefix, to separate callers behind one NAT."""
    user_agent = (attrs.user_agent or "")[:USER_AGENT_PREFIX_CHARS] or UNKNOWN
    return f"{attrs.ip or ANONYMOUS}:{user_agent}:{attrs.path}"


def identity_and_path(attrs: RequestAttributes) -> str:
    """Per-user limit on a route, used for chat posting."""
    identity = normalize_identity(attrs.identity) or ANONYMOUS
    return f"{identity}:{attrs.ip or ANONYMOUS}:{attrs.path}"


def identity_and_ip(attrs: RequestAttributes) -> str:
    """Auth and password-reset strategy: normalized identity plus IP."""
    identity = normalize_identity(attrs.identity) or UNKNOWN
    return f"{identity}:{attrs.ip or UNKNOWN}"
