"""Test the webhook ingestion pipeline end to end (in-memory store)."""
import asyncio
import json
from contextlib import nullcontext

import pytest

from gateway.errors import EventNotFound, RetriesExhausted
from gateway.integrations.credentials import CredentialStore, Credentials
from gateway.integrations.registry import default_registry
from gateway.webhooks.handler_registry import EventHandlerRegistry
from gateway.webhooks.models import ProcessingResult
from gateway.webhooks.pipeline import WebhookPipeline
from gateway.webhooks.store import InMemoryWebhookEventStore

from tests.helpers import (
    GITHUB_WEBHOOK_SECRET,
    INTERNAL_SECRET,
    github_push_body,
    make_settings,
    signed_headers,
)


def _github_headers(body, event_type="push", secret=GITHUB_WEBHOOK_SECRET):
    return signed_headers("X-GitHub-Event", event_type, "X-Hub-Signature-256", secret, body)


def _pipeline(handlers, settings=None, tracer=None):
    return WebhookPipeline(
        default_registry(),
        CredentialStore(),
        settings or make_settings(),
        handlers,
        InMemoryWebhookEventStore(),
        tracer=tracer,
    )


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_github_push_end_to_end(gateway, host):
    body = github_push_body(files=("src/index.ts",))

    outcome = await gateway.pipeline.ingest(body, _github_headers(body))
    await asyncio.sleep(0)

    assert outcome.status_code == 200
    assert outcome.result.success
    assert outcome.result.actions == ["repository_updated", "analysis_triggered", "team_notified"]
    assert outcome.result.message == "Processed 2 commits on main branch"
    assert "trigger_repository_analysis" in host.names()
    name, (platform, repository, branch) = host.calls[0]
    assert (name, platform, branch) == ("update_repository", "github", "main")
    assert repository["full_name"] == "acme/demo"

    stored = await gateway.store.list()
    assert len(stored) == 1
    assert stored[0].id == outcome.event.id
    assert stored[0].processed is True
    assert stored[0].processing_log[0] == "Received github push event"
    assert "Signature verified" in stored[0].processing_log


@pytest.mark.asyncio
async def test_push_touching_package_json(gateway):
    body = json.dumps({
        "ref": "refs/heads/main",
        "repository": {"full_name": "acme/demo", "clone_url": "https://github.com/acme/demo.git"},
        "commits": [
            {"id": "c1", "added": ["README.md"], "modified": []},
            {"id": "c2", "added": [], "modified": ["package.json"]},
            {"id": "c3", "added": ["docs/notes.txt"], "modified": []},
        ],
    }).encode()

    outcome = await gateway.pipeline.ingest(body, _github_headers(body))
    await asyncio.sleep(0)

    assert outcome.event.processed is True
    actions = outcome.result.actions
    assert actions.index("repository_updated") < actions.index("analysis_triggered") < actions.index("team_notified")
    assert outcome.result.message == "Processed 3 commits on main branch"


@pytest.mark.asyncio
async def test_push_without_significant_files_skips_analysis(gateway):
    body = github_push_body(files=("docs/guide.md",))
    outcome = await gateway.pipeline.ingest(body, _github_headers(body))
    assert outcome.result.actions == ["repository_updated", "team_notified"]


@pytest.mark.asyncio
async def test_internal_event(gateway, host):
    body = json.dumps({"projectId": "p1", "userId": "u1"}).encode()
    headers = signed_headers(
        "X-FlashFusion-Event", "project_generated", "X-FlashFusion-Signature", INTERNAL_SECRET, body
    )

    outcome = await gateway.pipeline.ingest(body, headers)
    await asyncio.sleep(0)

    assert outcome.status_code == 200
    assert outcome.event.source == "internal"
    assert outcome.result.actions == ["project_status_updated", "analysis_triggered", "user_notified"]
    assert ("update_project_status", ("p1", "generated")) in host.calls
    assert ("trigger_project_analysis", ("p1",)) in host.calls


@pytest.mark.asyncio
async def test_gitlab_push_uses_hmac(gateway):
    gateway.credentials.set("gitlab", Credentials(access_token="t", webhook_secret="gl-hook"))
    body = json.dumps({
        "ref": "refs/heads/dev",
        "user_name": "jane",
        "project": {"path_with_namespace": "acme/app", "git_http_url": "https://gitlab.com/acme/app.git"},
        "commits": [{"id": "c1", "added": ["main.go"]}],
    }).encode()
    headers = signed_headers("X-Gitlab-Event", "Push Hook", "X-Gitlab-Token", "gl-hook", body)

    outcome = await gateway.pipeline.ingest(body, headers)

    assert outcome.status_code == 200
    assert outcome.result.actions == ["repository_updated", "analysis_triggered", "team_notified"]
    assert outcome.result.message == "Processed 1 commits on dev branch"

    headers["X-Gitlab-Token"] = "gl-hook"
    rejected = await gateway.pipeline.ingest(body, headers)
    assert rejected.status_code == 401


@pytest.mark.asyncio
async def test_builder_platform_without_secret_or_signature(gateway, host):
    body = json.dumps({"appId": "a1", "status": "live"}).encode()

    outcome = await gateway.pipeline.ingest(body, {"x-bolt-event": "app.deployed"})

    assert outcome.status_code == 200
    assert outcome.result.actions == ["external_app_updated"]
    assert outcome.event.processing_log[1] == "No signature required"
    assert host.calls == [("update_external_app", ("bolt.new", "app.deployed", {"appId": "a1", "status": "live"}))]


@pytest.mark.asyncio
async def test_platform_failure_event_notifies_user(gateway, host):
    body = json.dumps({"userId": "u9", "site": "docs"}).encode()
    outcome = await gateway.pipeline.ingest(body, {"x-netlify-event": "deploy-failed"})
    assert outcome.result.actions == ["external_app_updated", "user_notified"]
    assert host.calls[-1][0] == "notify_user"


@pytest.mark.asyncio
async def test_credential_webhook_secret_is_used(gateway):
    gateway.credentials.set("bolt.new", Credentials(api_key="k", webhook_secret="bolt-hook"))
    body = b'{"appId": "a1"}'

    signed = signed_headers("x-bolt-event", "app.updated", "x-bolt-signature", "bolt-hook", body)
    assert (await gateway.pipeline.ingest(body, signed)).status_code == 200

    unsigned = await gateway.pipeline.ingest(body, {"x-bolt-event": "app.updated"})
    assert unsigned.status_code == 401
    assert "Signature verification failed: signature header missing" in unsigned.event.processing_log


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invalid_signature_runs_no_handlers(gateway, host):
    calls = []
    gateway.handlers.register("github", "push", lambda event: calls.append(event))
    body = github_push_body()
    headers = _github_headers(body, secret="not-the-secret")

    outcome = await gateway.pipeline.ingest(body, headers)

    assert outcome.status_code == 401
    assert not outcome.result.success
    assert calls == []
    assert host.calls == []
    stored = await gateway.store.get(outcome.event.id)
    assert stored.processed is False
    assert "Signature verification failed: signature mismatch" in stored.processing_log


@pytest.mark.asyncio
async def test_missing_signature_when_secret_configured(gateway):
    body = github_push_body()
    outcome = await gateway.pipeline.ingest(body, {"x-github-event": "push"})
    assert outcome.status_code == 401
    assert outcome.result.errors == ["Signature verification failed: signature header missing"]


@pytest.mark.asyncio
async def test_signature_without_configured_secret(gateway):
    body = b"{}"
    headers = signed_headers("x-bolt-event", "app.deployed", "x-bolt-signature", "guess", body)
    outcome = await gateway.pipeline.ingest(body, headers)
    assert outcome.status_code == 401
    assert "no webhook secret configured" in outcome.result.errors[0]


@pytest.mark.asyncio
async def test_unknown_source_is_recorded_not_processed(gateway, host):
    outcome = await gateway.pipeline.ingest(b'{"zen": "hi"}', {"x-random-event": "ping"})

    assert outcome.status_code == 200
    assert outcome.result.success
    stored = await gateway.store.get(outcome.event.id)
    assert stored.source == "unknown"
    assert stored.type == "unknown"
    assert stored.processed is False
    assert host.calls == []


@pytest.mark.asyncio
async def test_disconnected_platform_events_are_still_recorded(gateway, host):
    await gateway.auth.disconnect("bolt.new")
    assert gateway.handlers.handlers_for("bolt.new", "app.deployed") == []

    outcome = await gateway.pipeline.ingest(b'{"appId": "a1"}', {"x-bolt-event": "app.deployed"})

    assert outcome.status_code == 200
    assert outcome.result.message == "bolt.new app.deployed event received but not processed"
    assert outcome.result.actions == ["logged"]
    assert host.calls == []
    assert len(gateway.store) == 1


@pytest.mark.asyncio
async def test_malformed_body_is_a_handler_failure(gateway):
    body = b"not json"
    outcome = await gateway.pipeline.ingest(body, _github_headers(body))
    assert outcome.status_code == 500
    assert (await gateway.store.get(outcome.event.id)).processed is False


# ---------------------------------------------------------------------------
# Routing rules
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_exactly_one_record_per_request(gateway):
    push = github_push_body()
    requests = [
        (push, _github_headers(push)),
        (push, _github_headers(push, secret="wrong")),
        (b"{}", {"x-unknown-event": "ping"}),
        (b"oops", _github_headers(b"oops")),
        (b"{}", {"x-vercel-event": "deployment.ready"}),
    ]
    for body, headers in requests:
        await gateway.pipeline.ingest(body, headers)

    stored = await gateway.store.list()
    assert len(stored) == len(requests)
    assert all(event.processing_log for event in stored)


@pytest.mark.asyncio
async def test_code_hosts_take_precedence_over_platform_headers(gateway):
    body = github_push_body()
    headers = {**_github_headers(body), "x-bolt-event": "app.deployed"}
    outcome = await gateway.pipeline.ingest(body, headers)
    assert outcome.event.source == "github"
    assert outcome.event.type == "push"


@pytest.mark.asyncio
async def test_handler_failure_is_isolated(gateway):
    def explode(event):
        raise RuntimeError("boom")

    gateway.handlers.register("github", "push", explode)
    body = github_push_body()

    outcome = await gateway.pipeline.ingest(body, _github_headers(body))

    assert outcome.status_code == 500
    assert not outcome.result.success
    assert outcome.result.actions == ["repository_updated", "analysis_triggered", "team_notified"]
    assert len(outcome.result.errors) == 1
    assert "boom" in outcome.result.errors[0]
    stored = await gateway.store.get(outcome.event.id)
    assert stored.processed is False
    assert any("boom" in line for line in stored.processing_log)


@pytest.mark.asyncio
async def test_actions_are_merged_without_duplicates():
    handlers = EventHandlerRegistry()
    handlers.register("bolt.new", "app.updated", lambda e: ProcessingResult(True, "one", ["a", "b"]))
    handlers.register("bolt.new", "app.updated", lambda e: ProcessingResult(True, "two", ["b", "c"]))
    pipeline = _pipeline(handlers)

    outcome = await pipeline.ingest(b"{}", {"x-bolt-event": "app.updated"})

    assert outcome.result.actions == ["a", "b", "c"]
    assert outcome.result.message == "one; two"


@pytest.mark.asyncio
async def test_tracer_span_per_ingestion():
    spans = []

    class Tracer:
        def start_as_current_span(self, name, attributes=None):
            spans.append((name, attributes))
            return nullcontext()

    pipeline = _pipeline(EventHandlerRegistry(), tracer=Tracer())
    await pipeline.ingest(b"{}", {"x-vercel-event": "deployment.ready"})

    assert spans == [("webhook.ingest", {"webhook.source": "vercel.com", "webhook.type": "deployment.ready"})]


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_replay_after_failure():
    attempts = []

    def flaky(event):
        attempts.append(event.id)
        if len(attempts) == 1:
            raise RuntimeError("temporarily unavailable")
        return ProcessingResult(True, "done", ["external_app_updated"])

    handlers = EventHandlerRegistry()
    handlers.register("bolt.new", "build.completed", flaky)
    pipeline = _pipeline(handlers)

    outcome = await pipeline.ingest(b"{}", {"x-bolt-event": "build.completed"})
    assert outcome.status_code == 500

    result = await pipeline.replay(outcome.event.id)
    assert result.success
    assert result.actions == ["external_app_updated"]

    stored = await pipeline.store.get(outcome.event.id)
    assert stored.processed is True
    assert stored.retry_count == 1
    assert "Retry 1 started" in stored.processing_log

    again = await pipeline.replay(outcome.event.id)
    assert again.message == "Event already processed"
    assert (await pipeline.store.get(outcome.event.id)).retry_count == 1


@pytest.mark.asyncio
async def test_replay_unknown_event():
    with pytest.raises(EventNotFound):
        await _pipeline(EventHandlerRegistry()).replay("does-not-exist")


@pytest.mark.asyncio
async def test_replay_stops_at_retry_limit():
    def always_fails(event):
        raise RuntimeError("down")

    handlers = EventHandlerRegistry()
    handlers.register("bolt.new", "app.updated", always_fails)
    pipeline = _pipeline(handlers, settings=make_settings(max_webhook_retries=1))

    outcome = await pipeline.ingest(b"{}", {"x-bolt-event": "app.updated"})
    first = await pipeline.replay(outcome.event.id)
    assert not first.success

    with pytest.raises(RetriesExhausted):
        await pipeline.replay(outcome.event.id)
    assert (await pipeline.store.get(outcome.event.id)).retry_count == 1


@pytest.mark.asyncio
async def test_replay_reverifies_signature(gateway):
    body = github_push_body()
    outcome = await gateway.pipeline.ingest(body, _github_headers(body, secret="wrong"))
    assert outcome.status_code == 401

    result = await gateway.pipeline.replay(outcome.event.id)

    assert not result.success
    assert result.message == "Invalid signature"
    stored = await gateway.store.get(outcome.event.id)
    assert stored.retry_count == 1
    assert stored.processed is False


@pytest.mark.asyncio
async def test_replay_verifies_the_exact_received_bytes():
    attempts = []

    def flaky(event):
        attempts.append(event.id)
        if len(attempts) == 1:
            raise RuntimeError("temporarily unavailable")
        return ProcessingResult(True, "done", ["external_app_updated"])

    handlers = EventHandlerRegistry()
    handlers.register("bolt.new", "app.updated", flaky)
    pipeline = _pipeline(handlers)
    pipeline.credentials.set("bolt.new", Credentials(api_key="k", webhook_secret="bolt-hook"))

    # latin-1 body, not valid UTF-8
    body = b'{"name": "caf\xe9"}'
    headers = signed_headers("x-bolt-event", "app.updated", "x-bolt-signature", "bolt-hook", body)

    outcome = await pipeline.ingest(body, headers)
    assert outcome.status_code == 500

    stored = await pipeline.store.get(outcome.event.id)
    assert stored.raw_body == body

    result = await pipeline.replay(outcome.event.id)
    assert result.success
    assert result.actions == ["external_app_updated"]
