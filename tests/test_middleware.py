"""Tests for the security header and auth-path throttling middleware."""

from fastapi.testclient import TestClient

from packhub.core.app_factory import create_app
from packhub.core.config import SecuritySettings, Settings
from packhub.core.middleware import build_security_headers


def test_security_headers_on_every_response(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert "default-src 'self'" in resp.headers["Content-Security-Policy"]
    assert resp.headers["Strict-Transport-Security"].startswith("max-age=63072000")


def test_security_headers_can_be_disabled(store) -> None:
    cfg = Settings(security=SecuritySettings(headers_enabled=False))
    client = TestClient(create_app(cfg, counter_store=store, configure_logs=False))

    resp = client.get("/health")

    assert "X-Frame-Options" not in resp.headers


def test_custom_content_security_policy() -> None:
    headers = build_security_headers(SecuritySettings(content_security_policy="default-src 'none'"))

    assert headers["Content-Security-Policy"] == "default-src 'none'"


def test_auth_paths_throttled_per_ip_and_user_agent(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "198.51.100.4", "User-Agent": "bot/1.0"}
    body = {"email": "ghost@example.com"}

    statuses = [
        client.post("/api/request-password-reset", json={"email": f"u{i}@example.com"}, headers=headers).status_code
        for i in range(5)
    ]
    blocked = client.post("/api/request-password-reset", json=body, headers=headers)

    assert statuses == [200] * 5
    assert blocked.status_code == 429
    assert blocked.json()["message"] == "Too many requests, please try again later."
    assert blocked.headers["X-RateLimit-Remaining"] == "0"
    assert int(blocked.headers["Retry-After"]) > 0
    # Security and request-id headers still apply to throttled responses.
    assert blocked.headers["X-Frame-Options"] == "DENY"
    assert blocked.headers.get("X-Request-ID")


def test_auth_paths_other_user_agent_not_throttled(client: TestClient) -> None:
    for i in range(6):
        client.post(
            "/api/request-password-reset",
            json={"email": f"u{i}@example.com"},
            headers={"X-Forwarded-For": "198.51.100.4", "User-Agent": "bot/1.0"},
        )

    resp = client.post(
        "/api/request-password-reset",
        json={"email": "fresh@example.com"},
        headers={"X-Forwarded-For": "198.51.100.4", "User-Agent": "browser/2.0"},
    )

    assert resp.status_code == 200


def test_non_auth_paths_skip_auth_path_limit(client: TestClient) -> None:
    for _ in range(10):
        assert client.get("/health").status_code == 200
