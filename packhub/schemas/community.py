"""Pydantic schemas for chat, comments and votes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    """Chat message posted by the signed-in user."""

    message: str = Field(..., description="Message text (1-500 characters after trimming).")


class MessageOut(BaseModel):
    id: int
    author: str
    message: str
    created_at: datetime


class MessageResponse(BaseModel):
    message: MessageOut


class MessageListResponse(BaseModel):
    messages: list[MessageOut] = Field(
        default_factory=list,
        description="Messages from the retention window, oldest first.",
    )


class CommentCreate(BaseModel):
    """Comment on a texture pack, optionally replying to another comment."""

    pack_id: int = Field(..., alias="packId", ge=1, description="Pack being commented on.")
    content: str = Field(..., description="Comment text (1-500 characters after trimming).")
    parent_id: int | None = Field(
        default=None,
        alias="parentId",
        ge=1,
        description="Comment this one replies to.",
    )

    model_config = {"populate_by_name": True}


class CommentOut(BaseModel):
    id: int
    pack_id: int
    author: str
    content: str
    parent_id: int | None
    created_at: datetime


class CommentResponse(BaseModel):
    comment: CommentOut


class VoteRequest(BaseModel):
    """Up/down vote on a comment; ``none`` withdraws the caller's vote."""

    comment_id: int = Field(..., alias="commentId", ge=1)
    vote_type: Literal["up", "down", "none"] = Field(..., alias="voteType")

    model_config = {"populate_by_name": True}


class VoteResponse(BaseModel):
    comment_id: int
    upvotes: int
    downvotes: int
