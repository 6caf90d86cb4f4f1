from __future__ import annotations

from packhub.api.routes.auth import router as auth_router
from packhub.api.routes.comments import router as comments_router
from packhub.api.routes.health import router as health_router
from packhub.api.routes.messages import router as messages_router

__all__ = ["auth_router", "comments_router", "health_router", "messages_router"]
