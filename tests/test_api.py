"""Test the HTTP API with FastAPI's TestClient."""
import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from gateway.errors import ConfigurationError
from gateway.service import build_gateway

from tests.helpers import (
    GITHUB_WEBHOOK_SECRET,
    RecordingHost,
    github_push_body,
    make_settings,
    signed_headers,
)

BOLT_APP = {"id": "app_1", "name": "Todo", "stack": "react", "status": "deployed"}


def platform_api(request: httpx.Request) -> httpx.Response:
    """Stub for every outbound platform call made by the tests below."""
    host, path = request.url.host, request.url.path
    if host == "api.bolt.new":
        if path == "/v1/user":
            if request.headers["Authorization"] == "Bearer good-key":
                return httpx.Response(200, json={"id": "u1"})
            return httpx.Response(401)
        if path == "/v1/apps/app_1":
            return httpx.Response(200, json=BOLT_APP)
        if path == "/v1/apps/app_1/export":
            return httpx.Response(200, content=b"PK\x03\x04")
        if path == "/v1/webhooks":
            return httpx.Response(201, json={"id": "wh_1"})
        if path == "/v1/webhooks/wh_1" and request.method == "DELETE":
            return httpx.Response(204)
    if host == "api.github.com" and path == "/oauth/token":
        return httpx.Response(200, json={"access_token": "gh-token", "expires_in": 3600})
    return httpx.Response(404)


@pytest.fixture
def client():
    gateway = build_gateway(
        make_settings(),
        host=RecordingHost(),
        transport=httpx.MockTransport(platform_api),
    )
    with TestClient(create_app(gateway=gateway)) as test_client:
        yield test_client


def _connect_bolt(client):
    resp = client.post("/integrations/bolt.new/api-key", json={"api_key": "good-key"})
    assert resp.status_code == 200
    return resp


# ---------------------------------------------------------------------------
# Basics
# ---------------------------------------------------------------------------

def test_health_and_root(client):
    assert client.get("/health").json() == {"status": "healthy", "version": "0.1.0"}
    root = client.get("/").json()
    assert root["name"] == "Integration Gateway"
    assert "bolt.new" in root["platforms"]


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------

def test_webhook_methods(client):
    assert client.get("/webhooks").status_code == 405
    assert client.put("/webhooks", content=b"{}").status_code == 405
    preflight = client.options("/webhooks")
    assert preflight.status_code == 200
    assert preflight.text == "ok"


def test_signed_push_is_processed_and_listed(client):
    body = github_push_body()
    headers = signed_headers("X-GitHub-Event", "push", "X-Hub-Signature-256", GITHUB_WEBHOOK_SECRET, body)

    resp = client.post("/webhooks", content=body, headers=headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["actions"] == ["repository_updated", "analysis_triggered", "team_notified"]

    event = client.get(f"/webhooks/events/{data['event_id']}").json()
    assert event["source"] == "github"
    assert event["processed"] is True

    listed = client.get("/webhooks/events", params={"source": "github"}).json()
    assert listed["count"] == 1


def test_bad_signature_is_401(client):
    body = github_push_body()
    headers = signed_headers("X-GitHub-Event", "push", "X-Hub-Signature-256", "wrong", body)

    resp = client.post("/webhooks", content=body, headers=headers)

    assert resp.status_code == 401
    assert resp.json()["success"] is False
    assert client.get("/webhooks/events", params={"processed": False}).json()["count"] == 1


def test_unknown_sender_is_recorded(client):
    resp = client.post("/webhooks", content=b"{}", headers={"X-Whatever": "1"})
    assert resp.status_code == 200
    event = client.get(f"/webhooks/events/{resp.json()['event_id']}").json()
    assert event["source"] == "unknown"


def test_event_lookup_and_replay_errors(client):
    assert client.get("/webhooks/events/missing").status_code == 404
    resp = client.post("/webhooks/events/missing/replay")
    assert resp.status_code == 404
    assert resp.json()["error"] == "EventNotFound"


def test_replay_processed_event(client):
    resp = client.post("/webhooks", content=b"{}", headers={"x-vercel-event": "deployment.ready"})
    event_id = resp.json()["event_id"]

    replay = client.post(f"/webhooks/events/{event_id}/replay")

    assert replay.status_code == 200
    assert replay.json()["message"] == "Event already processed"
    assert replay.json()["retry_count"] == 0


# ---------------------------------------------------------------------------
# Integrations
# ---------------------------------------------------------------------------

def test_list_platforms(client):
    platforms = client.get("/integrations/platforms").json()
    assert len(platforms) == 10
    github = platforms[0]
    assert github["platform_id"] == "github"
    assert github["status"] == "disconnected"
    assert "push" in github["webhook_events"]


def test_unknown_platform_is_404(client):
    resp = client.get("/integrations/myspace.com/status")
    assert resp.status_code == 404
    assert resp.json()["error"] == "UnsupportedPlatform"


def test_authorize_and_exchange(client):
    resp = client.get("/integrations/github/authorize", params={"redirect_uri": "https://app/cb"})
    assert resp.status_code == 200
    url = resp.json()["authorize_url"]
    assert url.startswith("https://github.com/login/oauth/authorize?")
    state = httpx.URL(url).params["state"]

    exchanged = client.post(
        "/integrations/github/oauth/exchange",
        json={"code": "c", "redirect_uri": "https://app/cb", "state": state},
    )
    assert exchanged.status_code == 200
    assert exchanged.json()["status"] == "connected"

    replayed = client.post(
        "/integrations/github/oauth/exchange",
        json={"code": "c", "redirect_uri": "https://app/cb", "state": state},
    )
    assert replayed.status_code == 400


def test_api_key_rejected_is_401(client):
    resp = client.post("/integrations/bolt.new/api-key", json={"api_key": "bad-key"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "InvalidCredentials"


def test_apps_require_credentials(client):
    resp = client.get("/integrations/bolt.new/apps/app_1")
    assert resp.status_code == 401
    assert resp.json()["error"] == "NoCredentials"


def test_connected_platform_operations(client):
    _connect_bolt(client)

    status = client.get("/integrations/bolt.new/status").json()
    assert status["status"] == "connected"
    assert status["credentials"]["auth_type"] == "api_key"
    assert "good-key" not in str(status)

    app = client.get("/integrations/bolt.new/apps/app_1").json()
    assert app["id"] == "app_1"
    assert app["framework"] == "react"

    archive = client.get("/integrations/bolt.new/apps/app_1/export", params={"format": "zip"})
    assert archive.status_code == 200
    assert archive.content == b"PK\x03\x04"

    unsupported = client.get("/integrations/bolt.new/apps/app_1/export", params={"format": "pdf"})
    assert unsupported.status_code == 400

    missing = client.get("/integrations/bolt.new/apps/nope")
    assert missing.status_code == 502
    assert missing.json()["platform_status_text"] == "Not Found"

    registered = client.post(
        "/integrations/bolt.new/webhooks",
        json={"callback_url": "https://gw/webhooks", "events": ["app.deployed", "push"]},
    )
    assert registered.status_code == 201
    assert registered.json()["events"] == ["app.deployed"]
    assert registered.json()["dropped_events"] == ["push"]

    no_events = client.post(
        "/integrations/bolt.new/webhooks",
        json={"callback_url": "https://gw/webhooks", "events": ["push"]},
    )
    assert no_events.status_code == 400


def test_unregister_webhook(client):
    _connect_bolt(client)
    client.post(
        "/integrations/bolt.new/webhooks",
        json={"callback_url": "https://gw/webhooks", "events": ["app.deployed"]},
    )

    assert client.delete("/integrations/bolt.new/webhooks/wh_1").status_code == 204
    assert client.delete("/integrations/bolt.new/webhooks/gone").status_code == 204

    # no secret left, so unsigned deliveries are accepted again
    resp = client.post("/webhooks", content=b"{}", headers={"x-bolt-event": "app.deployed"})
    assert resp.status_code == 200


def test_disconnect(client):
    _connect_bolt(client)
    assert client.delete("/integrations/bolt.new").status_code == 204
    assert client.get("/integrations/bolt.new/status").json()["status"] == "disconnected"

    resp = client.post("/webhooks", content=b"{}", headers={"x-bolt-event": "app.deployed"})
    assert resp.json()["actions"] == ["logged"]


def test_refresh_without_credentials(client):
    resp = client.post("/integrations/github/refresh")
    assert resp.status_code == 200
    assert resp.json()["status"] == "disconnected"


def test_create_app_from_environment(monkeypatch):
    monkeypatch.setenv("GATEWAY_PLATFORMS", "github")
    monkeypatch.delenv("GITHUB_CLIENT_ID", raising=False)
    monkeypatch.delenv("GITHUB_CLIENT_SECRET", raising=False)

    with pytest.raises(ConfigurationError):
        create_app()
