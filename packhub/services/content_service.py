"""Chat and comment posting with text validation and spam screening.

Handlers call this service after the rate limit has admitted the request.
Text is checked in this order: empty, too long, spam heuristics. Only
accepted text reaches the repository.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from packhub.adapters.community.base import (
    AbstractContentRepository,
    ChatMessage,
    Comment,
    CommentScore,
    VoteType,
)
from packhub.core.errors import ValidationAppError
from packhub.services.spam_filter import SpamFilter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentService:
    """Validates and stores user-generated text.

    Args:
        repository: Persistence collaborator.
        spam_filter: Heuristics applied to every accepted text.
        max_message_chars: Upper bound for chat messages.
        max_comment_chars: Upper bound for comments.
        message_retention_days: Age after which chat messages are hidden and pruned.
        now: Time source returning an aware UTC datetime.
    """

    def __init__(
        self,
        *,
        repository: AbstractContentRepository,
        spam_filter: SpamFilter,
        max_message_chars: int = 500,
        max_comment_chars: int = 500,
        message_retention_days: int = 7,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._spam_filter = spam_filter
        self._max_message_chars = max_message_chars
        self._max_comment_chars = max_comment_chars
        self._retention = timedelta(days=message_retention_days)
        self._now = now

    def _validate_text(self, text: str, *, kind: str, max_chars: int) -> None:
        """Reject empty, oversized or spammy text.

        Raises:
            ValidationAppError: With codes ``{kind}_empty``, ``{kind}_too_long``
                or ``spam_detected``.
        """
        label = kind.capitalize()
        if not text or not text.strip():
            raise ValidationAppError(
                code=f"{kind}_empty",
                message=f"{label} cannot be empty",
            )

        if len(text) > max_chars:
            raise ValidationAppError(
                code=f"{kind}_too_long",
                message=f"{label} is too long (max {max_chars} characters)",
                details={"max_value": max_chars, "actual_value": len(text)},
            )

        verdict = self._spam_filter.classify(text)
        if verdict.is_spam:
            logger.info(
                "spam.detected",
                extra={"content_kind": kind, "reason": verdict.reason, "length": len(text)},
            )
            raise ValidationAppError(
                code="spam_detected",
                message=f"{label} detected as spam: {verdict.reason}",
                details={"reason": verdict.reason or ""},
            )

    def retention_cutoff(self) -> datetime:
        return self._now() - self._retention

    async def post_message(self, author: str, text: str) -> ChatMessage:
        self._validate_text(text, kind="message", max_chars=self._max_message_chars)
        return await self._repository.add_message(author, text)

    async def recent_messages(self) -> list[ChatMessage]:
        return await self._repository.list_messages_since(self.retention_cutoff())

    async def prune_messages(self) -> int:
        """Delete messages older than the retention window.

        Runs as a scheduled background task, so failures are logged here
        instead of propagating to a request that already completed.

        Returns:
            Number of deleted messages (0 on failure).
        """
        cutoff = self.retention_cutoff()
        try:
            deleted = await self._repository.delete_messages_before(cutoff)
        except Exception as exc:
            logger.error(
                "messages.prune_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return 0

        if deleted:
            logger.info("messages.pruned", extra={"deleted": deleted})
        return deleted

    async def post_comment(
        self,
        *,
        author: str,
        pack_id: int,
        content: str,
        parent_id: int | None = None,
    ) -> Comment:
        self._validate_text(content, kind="comment", max_chars=self._max_comment_chars)
        return await self._repository.add_comment(
            pack_id=pack_id,
            author=author,
            content=content,
            parent_id=parent_id,
        )

    async def vote(self, *, voter: str, comment_id: int, vote: VoteType) -> CommentScore:
        return await self._repository.record_comment_vote(
            comment_id=comment_id, voter=voter, vote=vote
        )
