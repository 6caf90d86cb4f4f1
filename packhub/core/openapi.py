"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- The ``X-Username`` gateway header as a security scheme, required only by
  the chat and comment operations
- A note on the 429 contract shared by every throttled operation
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from packhub.core.auth import USERNAME_HEADER

_TAGS = [
    {"name": "Chat", "description": "Live chat messages (rate limited, spam screened)."},
    {"name": "Comments", "description": "Pack comments and comment votes."},
    {"name": "Auth", "description": "Signup and password reset (strict rate limits)."},
    {"name": "Health", "description": "Liveness checks."},
]

_USER_SCOPED_PREFIXES = ("/api/messages", "/api/comments")

_RATE_LIMIT_NOTE = (
    "Throttled requests receive HTTP 429 with Retry-After, X-RateLimit-Limit "
    "and X-RateLimit-Remaining headers."
)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "GatewayUser",
            {
                "type": "apiKey",
                "in": "header",
                "name": USERNAME_HEADER,
                "description": "Username forwarded by the session gateway.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        info = schema.setdefault("info", {})
        description = info.get("description") or ""
        if _RATE_LIMIT_NOTE not in description:
            info["description"] = f"{description}\n\n{_RATE_LIMIT_NOTE}".strip()

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(_USER_SCOPED_PREFIXES):
                continue
            for method_name, method_obj in methods.items():
                if isinstance(method_obj, dict) and method_name != "get":
                    method_obj["security"] = [{"GatewayUser": []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
