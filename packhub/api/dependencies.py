"""FastAPI dependencies exposing the services stored on ``app.state``."""

from __future__ import annotations

from fastapi import Request

from packhub.adapters.community.base import AbstractAccountDirectory
from packhub.services.content_service import ContentService


def get_content_service(request: Request) -> ContentService:
    return request.app.state.content_service


def get_account_directory(request: Request) -> AbstractAccountDirectory:
    return request.app.state.accounts
