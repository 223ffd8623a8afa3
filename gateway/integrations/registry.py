"""
Platform Registry — static catalog of supported external platforms.

Pure data. Registry order doubles as the header precedence used to work out
which platform sent an inbound webhook.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from gateway.errors import UnsupportedPlatform


@dataclass(frozen=True)
class PlatformConfig:
    """Endpoints and capabilities of one external platform."""
    platform_id: str
    api_base_url: str
    oauth_authorize_url: str
    webhook_events: frozenset[str]
    required_scopes: tuple[str, ...]
    export_formats: frozenset[str]
    sync_capabilities: frozenset[str]
    event_header: str = ""       # lower-case, e.g. "x-github-event"
    signature_header: str = ""   # lower-case, e.g. "x-hub-signature-256"
    binary_export_formats: frozenset[str] = field(
        default_factory=lambda: frozenset({"zip", "docker"})
    )

    @property
    def token_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/oauth/token"


# Built-in source for events raised by the host application itself.
INTERNAL_SOURCE = "internal"
INTERNAL_EVENT_HEADER = "x-flashfusion-event"
INTERNAL_SIGNATURE_HEADER = "x-flashfusion-signature"

UNKNOWN_SOURCE = "unknown"


class PlatformRegistry:
    """Read-only lookup of PlatformConfig by platform id."""

    def __init__(self, configs: Iterable[PlatformConfig]):
        self._configs: dict[str, PlatformConfig] = {}
        for config in configs:
            if config.platform_id in self._configs:
                raise ValueError(f"Duplicate platform id: {config.platform_id}")
            if not config.webhook_events:
                raise ValueError(f"Platform {config.platform_id} has an empty webhook allowlist")
            self._configs[config.platform_id] = config

    def get(self, platform_id: str) -> PlatformConfig:
        config = self._configs.get(platform_id)
        if config is None:
            raise UnsupportedPlatform(platform_id)
        return config

    def ids(self) -> list[str]:
        return list(self._configs)

    def all(self) -> list[PlatformConfig]:
        return list(self._configs.values())

    def __contains__(self, platform_id: object) -> bool:
        return platform_id in self._configs

    def __iter__(self) -> Iterator[PlatformConfig]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

DEFAULT_PLATFORMS: tuple[PlatformConfig, ...] = (
    PlatformConfig(
        platform_id="github",
        api_base_url="https://api.github.com",
        oauth_authorize_url="https://github.com/login/oauth/authorize",
        webhook_events=frozenset({
            "push", "pull_request", "issues", "release",
            "deployment_status", "workflow_run",
        }),
        required_scopes=("repo", "read:user", "admin:repo_hook"),
        export_formats=frozenset({"zip", "git"}),
        sync_capabilities=frozenset({"code", "issues", "pull_requests", "releases"}),
        event_header="x-github-event",
        signature_header="x-hub-signature-256",
    ),
    PlatformConfig(
        platform_id="gitlab",
        api_base_url="https://gitlab.com/api/v4",
        oauth_authorize_url="https://gitlab.com/oauth/authorize",
        webhook_events=frozenset({"Push Hook", "Merge Request Hook", "Pipeline Hook"}),
        required_scopes=("api", "read_user", "read_repository"),
        export_formats=frozenset({"zip", "git"}),
        sync_capabilities=frozenset({"code", "merge_requests", "pipelines"}),
        event_header="x-gitlab-event",
        signature_header="x-gitlab-token",
    ),
    PlatformConfig(
        platform_id="bolt.new",
        api_base_url="https://api.bolt.new/v1",
        oauth_authorize_url="https://bolt.new/oauth/authorize",
        webhook_events=frozenset({"app.deployed", "app.updated", "build.completed"}),
        required_scopes=("read:apps", "write:apps", "read:deployments"),
        export_formats=frozenset({"zip", "git", "docker"}),
        sync_capabilities=frozenset({"code", "assets", "config", "dependencies"}),
        event_header="x-bolt-event",
        signature_header="x-bolt-signature",
    ),
    PlatformConfig(
        platform_id="app.base.44",
        api_base_url="https://api.app.base.44/v2",
        oauth_authorize_url="https://app.base.44/oauth/authorize",
        webhook_events=frozenset({"app.published", "data.updated", "user.action"}),
        required_scopes=("read:apps", "read:data", "write:data"),
        export_formats=frozenset({"json", "csv", "api"}),
        sync_capabilities=frozenset({"data", "users", "workflows", "settings"}),
        event_header="x-base44-event",
        signature_header="x-base44-signature",
    ),
    PlatformConfig(
        platform_id="replit.com",
        api_base_url="https://replit.com/graphql",
        oauth_authorize_url="https://replit.com/oauth/authorize",
        webhook_events=frozenset({"repl.run", "repl.stop", "git.push"}),
        required_scopes=("read:repls", "write:repls", "read:git"),
        export_formats=frozenset({"git", "zip", "docker"}),
        sync_capabilities=frozenset({"code", "environment", "secrets", "collaborators"}),
        event_header="x-replit-event",
        signature_header="x-replit-signature",
    ),
    PlatformConfig(
        platform_id="loveable.dev",
        api_base_url="https://api.loveable.dev/v1",
        oauth_authorize_url="https://loveable.dev/oauth/authorize",
        webhook_events=frozenset({"generation.completed", "app.deployed", "template.updated"}),
        required_scopes=("read:apps", "read:generations", "write:apps"),
        export_formats=frozenset({"react", "vue", "angular", "zip"}),
        sync_capabilities=frozenset({"components", "themes", "assets", "config"}),
        event_header="x-loveable-event",
        signature_header="x-loveable-signature",
    ),
    PlatformConfig(
        platform_id="leap.new",
        api_base_url="https://api.leap.new/v1",
        oauth_authorize_url="https://leap.new/oauth/authorize",
        webhook_events=frozenset({"model.trained", "inference.completed", "deployment.ready"}),
        required_scopes=("read:models", "write:models", "read:deployments"),
        export_formats=frozenset({"api", "sdk", "docker"}),
        sync_capabilities=frozenset({"models", "datasets", "apis", "analytics"}),
        event_header="x-leap-event",
        signature_header="x-leap-signature",
    ),
    PlatformConfig(
        platform_id="vercel.com",
        api_base_url="https://api.vercel.com/v13",
        oauth_authorize_url="https://vercel.com/oauth/authorize",
        webhook_events=frozenset({"deployment.created", "deployment.ready", "domain.created"}),
        required_scopes=("read:projects", "write:projects", "read:deployments"),
        export_formats=frozenset({"git", "env", "config"}),
        sync_capabilities=frozenset({"deployments", "domains", "env-vars", "analytics"}),
        event_header="x-vercel-event",
        signature_header="x-vercel-signature",
    ),
    PlatformConfig(
        platform_id="netlify.com",
        api_base_url="https://api.netlify.com/api/v1",
        oauth_authorize_url="https://app.netlify.com/authorize",
        webhook_events=frozenset({"deploy-created", "deploy-succeeded", "deploy-failed"}),
        required_scopes=("read:sites", "write:sites", "read:deploys"),
        export_formats=frozenset({"git", "zip", "functions"}),
        sync_capabilities=frozenset({"sites", "forms", "functions", "redirects"}),
        event_header="x-netlify-event",
        signature_header="x-netlify-signature",
    ),
    PlatformConfig(
        platform_id="railway.app",
        api_base_url="https://backboard.railway.app/graphql",
        oauth_authorize_url="https://railway.app/oauth/authorize",
        webhook_events=frozenset({"deployment.success", "deployment.failed", "service.updated"}),
        required_scopes=("read:projects", "write:projects", "read:deployments"),
        export_formats=frozenset({"docker", "env", "config"}),
        sync_capabilities=frozenset({"services", "databases", "variables", "logs"}),
        event_header="x-railway-event",
        signature_header="x-railway-signature",
    ),
)

CODE_HOSTS = frozenset({"github", "gitlab"})


def default_registry() -> PlatformRegistry:
    return PlatformRegistry(DEFAULT_PLATFORMS)
