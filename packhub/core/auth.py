"""Caller identity for routes that need a signed-in user.

Sessions are issued and verified by the auth gateway in front of this
service, which forwards the authenticated username in ``X-Username``.
This module only turns that header into a dependency.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

USERNAME_HEADER = "X-Username"


def normalize_username(raw: str | None) -> str | None:
    """Trim the forwarded username; blank values count as missing.

    Examples:
        >>> normalize_username("  steve ")
        'steve'
        >>> normalize_username("   ") is None
        True
    """
    if raw is None:
        return None
    username = raw.strip()
    return username or None


async def require_username(
    x_username: Annotated[str | None, Header(alias=USERNAME_HEADER)] = None,
) -> str:
    """FastAPI dependency returning the signed-in username.

    Raises:
        HTTPException: 401 when the gateway forwarded no user.
    """
    username = normalize_username(x_username)
    if username is None:
        logger.warning("auth.missing_user", extra={"header": USERNAME_HEADER})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is not authenticated",
        )
    return username
