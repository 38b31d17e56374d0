"""
Tests for the HTTP surface: health, chat, preflight and method handling.
"""

import pytest
from fastapi.testclient import TestClient

from chat_gateway.core.config import settings
from chat_gateway.core.origin import OriginGuard, get_origin_guard
from chat_gateway.main import app
from chat_gateway.services.assistant import get_assistant_service
from chat_gateway.services.assistant.provider import ProviderQuotaError

from tests.conftest import ALLOWED_ORIGIN, FakeProvider, user_body

EVIL_ORIGIN = "https://evil.example.net"


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def client(service):
    app.dependency_overrides[get_assistant_service] = lambda: service
    app.dependency_overrides[get_origin_guard] = lambda: OriginGuard(f"{ALLOWED_ORIGIN}, https://other.example.com")
    yield TestClient(app)
    app.dependency_overrides.clear()


def _post(client, body, origin=ALLOWED_ORIGIN):
    headers = {"Origin": origin} if origin else {}
    return client.post("/api/chat", json=body, headers=headers)


# =============================================================================
# Health
# =============================================================================


def test_health_reports_usage_and_model(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.json() == {
        "ok": True,
        "usage": {"count": 0, "cap": 3, "resetAtUTC": "00:00"},
        "model": settings.MODEL,
    }


def test_health_count_increases_by_one_after_admitted_chat(client):
    before = client.get("/api/health").json()["usage"]["count"]

    assert _post(client, user_body("hlr lookup api")).status_code == 200

    after = client.get("/api/health").json()["usage"]["count"]
    assert after == before + 1


# =============================================================================
# Chat
# =============================================================================


def test_chat_success_envelope(client, provider):
    response = _post(client, user_body("How do I authenticate to the API?"))

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
    assert response.headers["vary"] == "Origin"
    assert response.json() == {
        "status": "ok",
        "content": provider.reply,
        "usage": {"count": 1, "cap": 3, "resetAtUTC": "00:00"},
    }


def test_legacy_text_body_is_accepted(client, provider):
    response = _post(client, {"text": "hlr status codes"})

    assert response.json()["status"] == "ok"
    assert provider.calls[0][-1].content == "hlr status codes"


def test_off_topic_is_rejected_with_200(client):
    response = _post(client, user_body("What is the capital of Australia?"))

    assert response.status_code == 200
    assert response.json() == {
        "status": "rejected",
        "reason": "off_topic",
        "usage": {"count": 0, "cap": 3, "resetAtUTC": "00:00"},
    }


def test_daily_cap_returns_429(client, store, ledger):
    for _ in range(3):
        _post(client, user_body("hlr api"))

    response = _post(client, user_body("hlr api"))

    assert response.status_code == 429
    assert response.headers["cache-control"] == "no-store"
    assert response.json()["status"] == "closed"
    assert response.json()["reason"] == "daily_cap"
    assert store.get(ledger.day_key()) == "4"


def test_provider_quota_returns_429(client, service):
    service.provider = FakeProvider(error=ProviderQuotaError("gateway_429"))

    response = _post(client, user_body("hlr api"))

    assert response.status_code == 429
    assert response.json()["reason"] == "provider_quota"


def test_internal_error_returns_500(client, service):
    service.provider = FakeProvider(error=RuntimeError("empty_response"))

    response = _post(client, user_body("hlr api"))

    assert response.status_code == 500
    assert response.json()["status"] == "error"
    assert response.json()["reason"] == "internal_error"


def test_malformed_json_is_treated_as_empty_body(client):
    response = client.post(
        "/api/chat",
        content=b"{not json",
        headers={"Origin": ALLOWED_ORIGIN, "Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["reason"] == "off_topic"


# =============================================================================
# Origin guard
# =============================================================================


def test_disallowed_origin_post_is_forbidden(client, provider, ledger):
    response = _post(client, user_body("hlr api"), origin=EVIL_ORIGIN)

    assert response.status_code == 403
    assert "access-control-allow-origin" not in response.headers
    assert provider.calls == []
    assert ledger.peek()[0] == 0


def test_missing_origin_post_is_forbidden(client):
    response = _post(client, user_body("hlr api"), origin=None)

    assert response.status_code == 403


def test_preflight_for_allowed_origin(client):
    response = client.options("/api/chat", headers={"Origin": "https://other.example.com"})

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "https://other.example.com"
    assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
    assert response.headers["access-control-max-age"] == "86400"


def test_preflight_for_disallowed_origin(client):
    response = client.options("/api/chat", headers={"Origin": EVIL_ORIGIN})

    assert response.status_code == 204
    assert response.headers.get("access-control-allow-origin", "null") == "null"
    assert "access-control-allow-methods" not in response.headers


# =============================================================================
# Methods and paths
# =============================================================================


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "TRACE"])
def test_other_methods_on_chat_are_405(client, method):
    response = client.request(method, "/api/chat", headers={"Origin": ALLOWED_ORIGIN})

    assert response.status_code == 405
    assert response.headers["allow"] == "POST, OPTIONS"
    assert response.json()["status"] == "error"
    assert response.json()["reason"] == "internal_error"


def test_unknown_path_is_404(client):
    assert client.get("/api/unknown").status_code == 404
    assert client.post("/api/other", json={}).status_code == 404


# =============================================================================
# Guard unit behaviour
# =============================================================================


def test_origin_guard_parses_allow_list():
    guard = OriginGuard(" https://a.example , ,https://b.example ")

    assert guard.allowed == ["https://a.example", "https://b.example"]
    assert guard.allows("https://a.example")
    assert not guard.allows("")
    assert not guard.allows(None)
    assert not OriginGuard("").allows("https://a.example")
    assert guard.cors_headers(EVIL_ORIGIN) == {"Vary": "Origin"}
