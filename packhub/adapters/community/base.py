"""Repository interfaces for chat, comments and accounts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

VoteType = Literal["up", "down", "none"]


@dataclass(frozen=True)
class ChatMessage:
    id: int
    author: str
    message: str
    created_at: datetime


@dataclass(frozen=True)
class Comment:
    id: int
    pack_id: int
    author: str
    content: str
    parent_id: int | None
    created_at: datetime


@dataclass(frozen=True)
class CommentScore:
    comment_id: int
    upvotes: int
    downvotes: int


class AbstractContentRepository(ABC):
    """Persistence for user-generated text."""

    @abstractmethod
    async def add_message(self, author: str, message: str) -> ChatMessage:
        raise NotImplementedError

    @abstractmethod
    async def list_messages_since(self, since: datetime) -> list[ChatMessage]:
        """Return messages created at or after ``since``, oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def delete_messages_before(self, cutoff: datetime) -> int:
        """Delete messages older than ``cutoff`` and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    async def add_comment(
        self,
        *,
        pack_id: int,
        author: str,
        content: str,
        parent_id: int | None = None,
    ) -> Comment:
        """Store a comment.

        Raises:
            NotFoundAppError: If ``parent_id`` does not exist.
            ValidationAppError: If the parent belongs to another pack.
        """
        raise NotImplementedError

    @abstractmethod
    async def record_comment_vote(
        self, *, comment_id: int, voter: str, vote: VoteType
    ) -> CommentScore:
        """Replace ``voter``'s vote on a comment; ``none`` removes it.

        Raises:
            NotFoundAppError: If the comment does not exist.
        """
        raise NotImplementedError


class AbstractAccountDirectory(ABC):
    """Account lookups needed by the signup and password reset flows.

    Password hashing and session issuance belong to the credential service
    behind this interface.
    """

    @abstractmethod
    async def register(self, *, username: str, email: str, password: str) -> None:
        """Create an account.

        Raises:
            ConflictAppError: If the username or email is taken.
        """
        raise NotImplementedError

    @abstractmethod
    async def issue_reset_token(self, email: str) -> str | None:
        """Create a reset token for ``email``; None when no account matches."""
        raise NotImplementedError

    @abstractmethod
    async def consume_reset_token(self, token: str, new_password: str) -> None:
        """Set a new password using a reset token.

        Raises:
            ValidationAppError: If the token is unknown or expired.
        """
        raise NotImplementedError
