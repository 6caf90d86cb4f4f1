"""In-memory repositories (development and tests).

Notes:
- Per-process only: data is lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from packhub.adapters.community.base import (
    AbstractAccountDirectory,
    AbstractContentRepository,
    ChatMessage,
    Comment,
    CommentScore,
    VoteType,
)
from packhub.core.errors import ConflictAppError, NotFoundAppError, ValidationAppError

# 40 random bytes, hex encoded.
RESET_TOKEN_BYTES = 40


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryContentRepository(AbstractContentRepository):
    """Chat messages, comments and comment votes kept in dicts."""

    def __init__(self, *, now: Callable[[], datetime] = _utcnow) -> None:
        self._now = now
        self._lock = threading.RLock()
        self._messages: dict[int, ChatMessage] = {}
        self._comments: dict[int, Comment] = {}
        self._votes: dict[int, dict[str, str]] = {}
        self._next_message_id = 1
        self._next_comment_id = 1

    async def add_message(self, author: str, message: str) -> ChatMessage:
        with self._lock:
            record = ChatMessage(
                id=self._next_message_id,
                author=author,
                message=message,
                created_at=self._now(),
            )
            self._messages[record.id] = record
            self._next_message_id += 1
            return record

    async def list_messages_since(self, since: datetime) -> list[ChatMessage]:
        with self._lock:
            found = [m for m in self._messages.values() if m.created_at >= since]
        return sorted(found, key=lambda m: (m.created_at, m.id))

    async def delete_messages_before(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [mid for mid, m in self._messages.items() if m.created_at < cutoff]
            for mid in stale:
                del self._messages[mid]
            return len(stale)

    async def add_comment(
        self,
        *,
        pack_id: int,
        author: str,
        content: str,
        parent_id: int | None = None,
    ) -> Comment:
        with self._lock:
            if parent_id is not None:
                parent = self._comments.get(parent_id)
                if parent is None:
                    raise NotFoundAppError(
                        code="parent_comment_not_found",
                        message="Parent comment not found",
                    )
                if parent.pack_id != pack_id:
                    raise ValidationAppError(
                        code="parent_comment_pack_mismatch",
                        message="Parent comment does not belong to this pack",
                    )

            record = Comment(
                id=self._next_comment_id,
                pack_id=pack_id,
                author=author,
                content=content,
                parent_id=parent_id,
                created_at=self._now(),
            )
            self._comments[record.id] = record
            self._next_comment_id += 1
            return record

    async def record_comment_vote(
        self, *, comment_id: int, voter: str, vote: VoteType
    ) -> CommentScore:
        with self._lock:
            if comment_id not in self._comments:
                raise NotFoundAppError(
                    code="comment_not_found",
                    message="Comment not found",
                )
            votes = self._votes.setdefault(comment_id, {})
            if vote == "none":
                votes.pop(voter, None)
            else:
                votes[voter] = vote

            return CommentScore(
                comment_id=comment_id,
                upvotes=sum(1 for v in votes.values() if v == "up"),
                downvotes=sum(1 for v in votes.values() if v == "down"),
            )


@dataclass
class _Account:
    username: str
    email: str
    password_changed_at: float


@dataclass
class _ResetToken:
    email: str
    expires_at: float


class InMemoryAccountDirectory(AbstractAccountDirectory):
    """Accounts and reset tokens kept in dicts.

    No credential material is stored; a real directory hands the password to
    the credential service.
    """

    def __init__(
        self,
        *,
        reset_token_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token_ttl = reset_token_ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._accounts: dict[str, _Account] = {}
        self._tokens: dict[str, _ResetToken] = {}

    async def register(self, *, username: str, email: str, password: str) -> None:
        email_key = email.strip().lower()
        with self._lock:
            if email_key in self._accounts:
                raise ConflictAppError(
                    code="email_taken",
                    message="User with this email already exists",
                )
            if any(a.username.lower() == username.lower() for a in self._accounts.values()):
                raise ConflictAppError(
                    code="username_taken",
                    message="User with this username already exists",
                )
            self._accounts[email_key] = _Account(
                username=username,
                email=email_key,
                password_changed_at=self._clock(),
            )

    async def issue_reset_token(self, email: str) -> str | None:
        email_key = email.strip().lower()
        with self._lock:
            if email_key not in self._accounts:
                return None
            # One live token per account.
            for token, record in list(self._tokens.items()):
                if record.email == email_key:
                    del self._tokens[token]
            token = secrets.token_hex(RESET_TOKEN_BYTES)
            self._tokens[token] = _ResetToken(
                email=email_key,
                expires_at=self._clock() + self._token_ttl,
            )
            return token

    async def consume_reset_token(self, token: str, new_password: str) -> None:
        with self._lock:
            record = self._tokens.get(token)
            if record is None:
                raise ValidationAppError(
                    code="invalid_reset_token",
                    message="Invalid or expired token",
                )
            if record.expires_at <= self._clock():
                del self._tokens[token]
                raise ValidationAppError(
                    code="expired_reset_token",
                    message="Invalid or expired token",
                )
            del self._tokens[token]
            account = self._accounts.get(record.email)
            if account is not None:
                account.password_changed_at = self._clock()
