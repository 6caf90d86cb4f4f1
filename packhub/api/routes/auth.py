"""Signup and password reset endpoints.

These paths are also covered by the auth-path middleware (IP plus
user-agent). The handlers add the identity-scoped checks on top.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from packhub.adapters.community.base import AbstractAccountDirectory
from packhub.api.dependencies import get_account_directory
from packhub.core.logging import log_security_event
from packhub.core.rate_limit import (
    build_rate_limit_response,
    check_auth_rate_limit,
    check_password_reset_rate_limit,
    get_policies,
    get_rate_limiter,
)
from packhub.schemas.auth import (
    MessageOnlyResponse,
    PasswordResetRequest,
    ResetPasswordRequest,
    SignUpRequest,
)
from packhub.services.identifiers import client_ip
from packhub.services.policies import PolicyRegistry
from packhub.services.rate_limiter import RateLimiter

router = APIRouter(prefix="/api", tags=["Auth"])

RESET_REQUESTED_MESSAGE = (
    "If an account exists with that email, a password reset link has been sent."
)

# Token submissions are not tied to an email, so they share one label per IP.
TOKEN_RESET_IDENTITY = "token-reset"


@router.post(
    "/user",
    response_model=MessageOnlyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={429: {"description": "Too many signup attempts"}},
)
async def sign_up(
    payload: SignUpRequest,
    request: Request,
    accounts: Annotated[AbstractAccountDirectory, Depends(get_account_directory)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    policies: Annotated[PolicyRegistry, Depends(get_policies)],
):
    """Register an account, throttled per email and IP.

    Raises:
        ConflictAppError: 409 when the email or username is taken.
    """
    ip = client_ip(request.headers)
    decision = await check_auth_rate_limit(limiter, policies, ip, payload.email)
    if not decision.success:
        log_security_event("SIGNUP_THROTTLED", ip=ip)
        return build_rate_limit_response(
            decision, "Too many signup attempts. Please try again later."
        )

    await accounts.register(
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    log_security_event("USER_CREATED", username=payload.username)
    return MessageOnlyResponse(message="User created successfully")


@router.post(
    "/request-password-reset",
    response_model=MessageOnlyResponse,
    responses={429: {"description": "Too many reset requests"}},
)
async def request_password_reset(
    payload: PasswordResetRequest,
    request: Request,
    accounts: Annotated[AbstractAccountDirectory, Depends(get_account_directory)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    policies: Annotated[PolicyRegistry, Depends(get_policies)],
):
    """Issue a reset token when the email has an account.

    Every outcome, including throttling, answers with the same message so
    the endpoint can't be used to discover registered emails.
    """
    ip = client_ip(request.headers)
    decision = await check_password_reset_rate_limit(limiter, policies, ip, payload.email)
    if not decision.success:
        log_security_event("PASSWORD_RESET_THROTTLED", ip=ip)
        return build_rate_limit_response(decision, RESET_REQUESTED_MESSAGE)

    token = await accounts.issue_reset_token(payload.email)
    if token is not None:
        # Delivery belongs to the mail service; only the fact is logged here.
        log_security_event("PASSWORD_RESET_REQUESTED", email=payload.email)

    return MessageOnlyResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageOnlyResponse,
    responses={429: {"description": "Too many reset attempts"}},
)
async def reset_password(
    payload: ResetPasswordRequest,
    request: Request,
    accounts: Annotated[AbstractAccountDirectory, Depends(get_account_directory)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    policies: Annotated[PolicyRegistry, Depends(get_policies)],
):
    """Set a new password with a reset token.

    Raises:
        ValidationAppError: 400 when the token is unknown or expired.
    """
    ip = client_ip(request.headers)
    decision = await check_password_reset_rate_limit(
        limiter, policies, ip, TOKEN_RESET_IDENTITY
    )
    if not decision.success:
        log_security_event("PASSWORD_RESET_ATTEMPTS_THROTTLED", ip=ip)
        return build_rate_limit_response(
            decision, "Too many password reset attempts. Please try again later."
        )

    await accounts.consume_reset_token(payload.token, payload.password)
    log_security_event("PASSWORD_RESET_SUCCESS")
    return MessageOnlyResponse(message="Password has been reset successfully")
