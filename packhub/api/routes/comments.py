from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from packhub.api.dependencies import get_content_service
from packhub.core.auth import require_username
from packhub.core.rate_limit import enforce_rate_limit
from packhub.schemas.community import (
    CommentCreate,
    CommentOut,
    CommentResponse,
    VoteRequest,
    VoteResponse,
)
from packhub.services.content_service import ContentService

router = APIRouter(prefix="/api/comments", tags=["Comments"])

_RATE_LIMITED = "Rate limit exceeded. Please try again later."


@router.post(
    "",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit("comment", message=_RATE_LIMITED))],
)
async def post_comment(
    payload: CommentCreate,
    username: Annotated[str, Depends(require_username)],
    service: Annotated[ContentService, Depends(get_content_service)],
) -> CommentResponse:
    """Comment on a pack or reply to a comment.

    Raises:
        ValidationAppError: 400 for empty, oversized or spammy text, or a
            parent comment from another pack.
        NotFoundAppError: 404 when the parent comment does not exist.
    """
    record = await service.post_comment(
        author=username,
        pack_id=payload.pack_id,
        content=payload.content,
        parent_id=payload.parent_id,
    )
    return CommentResponse(comment=CommentOut(**vars(record)))


@router.post(
    "/vote",
    response_model=VoteResponse,
    dependencies=[Depends(enforce_rate_limit("vote", message=_RATE_LIMITED))],
)
async def vote_on_comment(
    payload: VoteRequest,
    username: Annotated[str, Depends(require_username)],
    service: Annotated[ContentService, Depends(get_content_service)],
) -> VoteResponse:
    """Up/down vote a comment, or withdraw a vote with ``none``."""
    score = await service.vote(
        voter=username,
        comment_id=payload.comment_id,
        vote=payload.vote_type,
    )
    return VoteResponse(
        comment_id=score.comment_id,
        upvotes=score.upvotes,
        downvotes=score.downvotes,
    )
