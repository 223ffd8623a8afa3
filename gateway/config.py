"""Gateway configuration.

Settings are frozen dataclasses loaded once at startup from the
environment. Per-platform secrets follow a naming convention derived from
the platform id::

    bolt.new     -> BOLT_NEW_CLIENT_ID / BOLT_NEW_CLIENT_SECRET / BOLT_NEW_WEBHOOK_SECRET
    app.base.44  -> APP_BASE_44_CLIENT_ID / ...

Every platform listed in GATEWAY_PLATFORMS must have its client id and
secret set; anything missing is reported in a single ConfigurationError so
a misconfigured process never starts.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping
import os
import re

from gateway.errors import ConfigurationError
from gateway.integrations.registry import INTERNAL_SOURCE, PlatformRegistry


def env_prefix(platform_id: str) -> str:
    """Upper-case the id and collapse punctuation to underscores."""
    return re.sub(r"[^A-Z0-9]+", "_", platform_id.upper()).strip("_")


@dataclass(frozen=True)
class PlatformSecrets:
    """OAuth client and webhook secrets for one platform."""
    client_id: str
    client_secret: str
    webhook_secret: str | None = None


@dataclass(frozen=True)
class GatewaySettings:
    """Process-wide gateway settings.

    Usage::

        settings = GatewaySettings.from_env(default_registry())
        gateway = build_gateway(settings)
    """

    platform_secrets: Mapping[str, PlatformSecrets] = field(default_factory=dict)
    # Webhook secrets for platforms that are not OAuth-enabled
    webhook_secrets: Mapping[str, str] = field(default_factory=dict)
    internal_webhook_secret: str | None = None

    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    http_timeout: float = 30.0
    oauth_timeout: float = 15.0
    max_webhook_retries: int = 3
    database_url: str | None = None
    log_level: str = "INFO"
    log_format: str = "json"
    user_agent: str = "IntegrationGateway/1.0"

    def secrets_for(self, platform_id: str) -> PlatformSecrets:
        secrets = self.platform_secrets.get(platform_id)
        if secrets is None:
            raise ConfigurationError(
                f"No OAuth client configured for {platform_id}; "
                f"set {env_prefix(platform_id)}_CLIENT_ID and {env_prefix(platform_id)}_CLIENT_SECRET"
            )
        return secrets

    def webhook_secret_for(self, source: str) -> str | None:
        if source == INTERNAL_SOURCE:
            return self.internal_webhook_secret
        secrets = self.platform_secrets.get(source)
        if secrets is not None and secrets.webhook_secret:
            return secrets.webhook_secret
        return self.webhook_secrets.get(source)

    @classmethod
    def from_env(
        cls,
        registry: PlatformRegistry,
        environ: Mapping[str, str] | None = None,
    ) -> "GatewaySettings":
        env = os.environ if environ is None else environ

        enabled = [
            p.strip() for p in env.get("GATEWAY_PLATFORMS", "github").split(",") if p.strip()
        ]
        problems: list[str] = []
        unknown = [p for p in enabled if p not in registry]
        if unknown:
            problems.append(f"unknown platforms in GATEWAY_PLATFORMS: {', '.join(unknown)}")

        platform_secrets: dict[str, PlatformSecrets] = {}
        for platform_id in enabled:
            if platform_id not in registry:
                continue
            prefix = env_prefix(platform_id)
            client_id = env.get(f"{prefix}_CLIENT_ID", "")
            client_secret = env.get(f"{prefix}_CLIENT_SECRET", "")
            missing = [
                name for name, value in (
                    (f"{prefix}_CLIENT_ID", client_id),
                    (f"{prefix}_CLIENT_SECRET", client_secret),
                ) if not value
            ]
            if missing:
                problems.append(f"missing {', '.join(missing)}")
                continue
            platform_secrets[platform_id] = PlatformSecrets(
                client_id=client_id,
                client_secret=client_secret,
                webhook_secret=env.get(f"{prefix}_WEBHOOK_SECRET") or None,
            )

        if problems:
            raise ConfigurationError("Invalid gateway configuration: " + "; ".join(problems))

        webhook_secrets = {
            platform_id: env[f"{env_prefix(platform_id)}_WEBHOOK_SECRET"]
            for platform_id in registry.ids()
            if platform_id not in platform_secrets
            and env.get(f"{env_prefix(platform_id)}_WEBHOOK_SECRET")
        }

        try:
            http_timeout = float(env.get("GATEWAY_HTTP_TIMEOUT", "30"))
            oauth_timeout = float(env.get("GATEWAY_OAUTH_TIMEOUT", "15"))
            max_retries = int(env.get("WEBHOOK_MAX_RETRIES", "3"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        return cls(
            platform_secrets=platform_secrets,
            webhook_secrets=webhook_secrets,
            internal_webhook_secret=env.get("INTERNAL_WEBHOOK_SECRET") or None,
            cors_origins=tuple(
                o.strip() for o in env.get("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()
            ),
            http_timeout=http_timeout,
            oauth_timeout=oauth_timeout,
            max_webhook_retries=max_retries,
            database_url=env.get("DATABASE_URL") or None,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_format=env.get("LOG_FORMAT", "json"),
        )
