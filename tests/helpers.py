"""Test helpers: settings with every platform configured, a recording host, signed requests."""
import json

from gateway.config import GatewaySettings, PlatformSecrets, env_prefix
from gateway.integrations.registry import DEFAULT_PLATFORMS
from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.signatures import compute_signature

GITHUB_WEBHOOK_SECRET = "gh-webhook-secret"
INTERNAL_SECRET = "internal-secret"


def make_settings(**overrides) -> GatewaySettings:
    platform_secrets = {
        p.platform_id: PlatformSecrets(
            client_id=f"{env_prefix(p.platform_id).lower()}-client",
            client_secret=f"{env_prefix(p.platform_id).lower()}-secret",
        )
        for p in DEFAULT_PLATFORMS
    }
    platform_secrets["github"] = PlatformSecrets(
        client_id="github-client",
        client_secret="github-secret",
        webhook_secret=GITHUB_WEBHOOK_SECRET,
    )
    values = {
        "platform_secrets": platform_secrets,
        "internal_webhook_secret": INTERNAL_SECRET,
    }
    values.update(overrides)
    return GatewaySettings(**values)


class RecordingHost(HostApplication):
    """Host application that remembers every call it receives."""

    def __init__(self, reviewers=None, labels=None):
        self.calls: list[tuple[str, tuple]] = []
        self.reviewers = reviewers or []
        self.labels = labels or []

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def update_repository(self, platform, repository, branch):
        self.calls.append(("update_repository", (platform, repository, branch)))

    async def trigger_repository_analysis(self, repository_url, branch):
        self.calls.append(("trigger_repository_analysis", (repository_url, branch)))

    async def notify_team_members(self, repository_name, event_type, data):
        self.calls.append(("notify_team_members", (repository_name, event_type, data)))

    async def update_pull_request(self, pull_request, repository):
        self.calls.append(("update_pull_request", (pull_request, repository)))

    async def trigger_code_review(self, pull_request):
        self.calls.append(("trigger_code_review", (pull_request,)))

    async def recommend_reviewers(self, pull_request):
        self.calls.append(("recommend_reviewers", (pull_request,)))
        return self.reviewers

    async def suggest_issue_labels(self, issue):
        self.calls.append(("suggest_issue_labels", (issue,)))
        return self.labels

    async def update_release(self, release, repository):
        self.calls.append(("update_release", (release, repository)))

    async def trigger_deployment_workflows(self, repository, release):
        self.calls.append(("trigger_deployment_workflows", (repository, release)))

    async def update_project_status(self, project_id, status):
        self.calls.append(("update_project_status", (project_id, status)))

    async def trigger_project_analysis(self, project_id):
        self.calls.append(("trigger_project_analysis", (project_id,)))

    async def update_team_member(self, team_id, member_id, status):
        self.calls.append(("update_team_member", (team_id, member_id, status)))

    async def notify_team(self, team_id, kind, payload):
        self.calls.append(("notify_team", (team_id, kind, payload)))

    async def notify_user(self, user_id, kind, payload):
        self.calls.append(("notify_user", (user_id, kind, payload)))

    async def update_external_app(self, platform, event_type, payload):
        self.calls.append(("update_external_app", (platform, event_type, payload)))


def signed_headers(event_header: str, event_type: str, signature_header: str, secret: str, body: bytes) -> dict:
    return {
        event_header: event_type,
        signature_header: "sha256=" + compute_signature(secret, body),
        "content-type": "application/json",
    }


def github_push_body(files=("src/app.py",), ref="refs/heads/main") -> bytes:
    return json.dumps({
        "ref": ref,
        "repository": {
            "id": 1,
            "name": "demo",
            "full_name": "acme/demo",
            "clone_url": "https://github.com/acme/demo.git",
        },
        "commits": [
            {"id": "c1", "message": "first", "added": list(files), "modified": []},
            {"id": "c2", "message": "second", "added": [], "modified": ["README.md"]},
        ],
        "pusher": {"name": "octocat"},
    }).encode()


