"""Pydantic schemas for signup and password reset."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

# At least one lower-case letter, upper-case letter, digit and symbol.
_PASSWORD_RE = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*(),.?\":{}|<>\\'`~\[\]/\-_=+])"
    r"[A-Za-z\d!@#$%^&*(),.?\":{}|<>\\'`~\[\]/\-_=+]{8,}$"
)
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_RULES = (
    "Password must include at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)


def validate_password(value: str) -> str:
    """Enforce the password strength rules shared by signup and reset."""
    if not _PASSWORD_RE.match(value):
        raise ValueError(PASSWORD_RULES)
    return value


def validate_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Invalid email")
    return value


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)
    username: str = Field(..., min_length=3, max_length=30)
    password: str = Field(..., min_length=8, max_length=100)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return validate_email(value)

    @field_validator("username")
    @classmethod
    def _check_username(cls, value: str) -> str:
        if not _USERNAME_RE.match(value):
            raise ValueError(
                "Username can only contain letters, numbers, underscores, and hyphens"
            )
        return value

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return validate_password(value)


class PasswordResetRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        return validate_email(value)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=100)

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return validate_password(value)


class MessageOnlyResponse(BaseModel):
    message: str
