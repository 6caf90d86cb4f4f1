from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response

from packhub.api.dependencies import get_content_service
from packhub.core.auth import require_username
from packhub.core.rate_limit import (
    apply_decision,
    check_rate_limit,
    get_policies,
    get_rate_limiter,
)
from packhub.schemas.community import (
    MessageCreate,
    MessageListResponse,
    MessageOut,
    MessageResponse,
)
from packhub.services.content_service import ContentService
from packhub.services.policies import PolicyRegistry
from packhub.services.rate_limiter import RateLimiter

router = APIRouter(prefix="/api/messages", tags=["Chat"])


@router.get("", response_model=MessageListResponse)
async def list_messages(
    background_tasks: BackgroundTasks,
    service: Annotated[ContentService, Depends(get_content_service)],
) -> MessageListResponse:
    """Return chat messages from the retention window.

    Older rows are pruned after the response is sent; the prune task logs
    its own failures.
    """
    messages = await service.recent_messages()
    background_tasks.add_task(service.prune_messages)
    return MessageListResponse(
        messages=[MessageOut(**vars(m)) for m in messages],
    )


@router.post("", response_model=MessageResponse)
async def post_message(
    payload: MessageCreate,
    request: Request,
    response: Response,
    username: Annotated[str, Depends(require_username)],
    service: Annotated[ContentService, Depends(get_content_service)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    policies: Annotated[PolicyRegistry, Depends(get_policies)],
) -> MessageResponse:
    """Post a chat message.

    Throttled per user and IP, then screened for length and spam.

    Raises:
        HTTPException: 429 when the user is over the message limit.
        ValidationAppError: 400 for empty, oversized or spammy text.
    """
    decision = await check_rate_limit(request, policies.message, limiter, identity=username)
    apply_decision(
        decision,
        response,
        message="Rate limit exceeded. Please try again later.",
    )

    record = await service.post_message(username, payload.message)
    return MessageResponse(message=MessageOut(**vars(record)))
