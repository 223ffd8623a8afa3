"""
Platform Client — authenticated calls to external platform APIs.

Every operation runs the same pipeline:
Platform lookup → local validation → Token refresh → Auth header → Request → Health

Local validation (export format, webhook event allowlist) happens before
any network traffic, so a bad request never reaches the platform.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote
import secrets
import time

import httpx
import structlog

from gateway.errors import (
    CredentialsExpired,
    NoCredentials,
    RemoteError,
    UnsupportedEvents,
    UnsupportedFormat,
)
from gateway.integrations.normalizer import CanonicalAppRecord, DataNormalizer
from gateway.integrations.oauth_manager import AuthManager
from gateway.integrations.registry import PlatformConfig, PlatformRegistry

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _segment(value: str) -> str:
    """Escape an id for use as a single path segment."""
    segment = quote(str(value), safe="")
    if segment in (".", ".."):
        segment = segment.replace(".", "%2E")
    return segment


# ---------------------------------------------------------------------------
# Health tracking
# ---------------------------------------------------------------------------

@dataclass
class IntegrationHealth:
    """Request metrics for one platform."""
    platform_id: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_latency_ms: float = 0.0
    last_success: datetime | None = None
    last_failure: datetime | None = None
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.failed_requests / self.total_requests

    def record(self, latency_ms: float, success: bool, error: str | None = None) -> None:
        self.total_requests += 1
        # running mean
        self.avg_latency_ms += (latency_ms - self.avg_latency_ms) / self.total_requests
        if success:
            self.successful_requests += 1
            self.last_success = _utcnow()
        else:
            self.failed_requests += 1
            self.last_failure = _utcnow()
            self.last_error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform_id": self.platform_id,
            "total_requests": self.total_requests,
            "successful": self.successful_requests,
            "failed": self.failed_requests,
            "error_rate": round(self.error_rate, 4),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_error": self.last_error,
        }


# ---------------------------------------------------------------------------
# Webhook registration
# ---------------------------------------------------------------------------

@dataclass
class WebhookRegistration:
    """A webhook registered on a remote platform."""
    platform_id: str
    callback_url: str
    events: list[str]
    dropped_events: list[str] = field(default_factory=list)
    remote_id: str | None = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform_id": self.platform_id,
            "callback_url": self.callback_url,
            "events": list(self.events),
            "dropped_events": list(self.dropped_events),
            "remote_id": self.remote_id,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# PlatformClient
# ---------------------------------------------------------------------------

class PlatformClient:
    """Executes sync / export / deploy / list / webhook calls against platforms."""

    def __init__(
        self,
        registry: PlatformRegistry,
        auth: AuthManager,
        normalizer: DataNormalizer,
        timeout: float = 30.0,
        user_agent: str = "IntegrationGateway/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.registry = registry
        self.auth = auth
        self.normalizer = normalizer
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport
        self._health: dict[str, IntegrationHealth] = {}

    def health(self, platform_id: str) -> IntegrationHealth:
        if platform_id not in self._health:
            self._health[platform_id] = IntegrationHealth(platform_id=platform_id)
        return self._health[platform_id]

    # --- Core request ---

    async def _request(
        self,
        config: PlatformConfig,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        """Refresh, authenticate and send one request. Raises RemoteError on non-2xx."""
        platform_id = config.platform_id
        if not await self.auth.refresh_if_needed(platform_id):
            if self.auth.store.get(platform_id) is None:
                raise NoCredentials(platform_id)
            logger.warning("platform_request_blocked", platform=platform_id, reason="credentials expired")
            raise CredentialsExpired(platform_id)
        headers = {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
            **self.auth.authorization_headers(platform_id),
        }
        if body is not None:
            headers["Content-Type"] = "application/json"

        url = f"{config.api_base_url.rstrip('/')}/{path.lstrip('/')}"
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.request(method, url, params=params, json=body, headers=headers)
        except httpx.HTTPError as exc:
            message = str(exc) or type(exc).__name__
            self.health(platform_id).record((time.monotonic() - start) * 1000, False, message)
            logger.warning("platform_request_failed", platform=platform_id, method=method, path=path, error=message)
            raise RemoteError(platform_id, 0, message) from exc

        latency = (time.monotonic() - start) * 1000
        if not resp.is_success:
            status_text = resp.reason_phrase or f"HTTP {resp.status_code}"
            self.health(platform_id).record(latency, False, status_text)
            logger.warning(
                "platform_request_rejected",
                platform=platform_id,
                method=method,
                path=path,
                status=resp.status_code,
                status_text=status_text,
            )
            raise RemoteError(platform_id, resp.status_code, status_text)

        self.health(platform_id).record(latency, True)
        return resp

    @staticmethod
    def _json(config: PlatformConfig, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteError(config.platform_id, resp.status_code, "malformed JSON response") from exc

    # --- Operations ---

    async def sync_app(self, platform_id: str, app_id: str) -> CanonicalAppRecord | Any:
        """Fetch one app and normalize it."""
        config = self.registry.get(platform_id)
        resp = await self._request(config, "GET", f"/apps/{_segment(app_id)}")
        record = self.normalizer.normalize(platform_id, self._json(config, resp))
        logger.info("app_synced", platform=platform_id, app_id=app_id)
        return record

    async def export_app(self, platform_id: str, app_id: str, export_format: str) -> bytes | str:
        """Export an app; bytes for archive/container formats, text otherwise."""
        config = self.registry.get(platform_id)
        if export_format not in config.export_formats:
            raise UnsupportedFormat(platform_id, export_format)

        resp = await self._request(
            config, "GET", f"/apps/{_segment(app_id)}/export", params={"format": export_format}
        )
        if export_format in config.binary_export_formats:
            return resp.content
        return resp.text

    async def deploy_app(self, platform_id: str, app_config: dict[str, Any]) -> CanonicalAppRecord | Any:
        config = self.registry.get(platform_id)
        resp = await self._request(config, "POST", "/apps", body=app_config)
        record = self.normalizer.normalize(platform_id, self._json(config, resp))
        logger.info("app_deployed", platform=platform_id)
        return record

    async def list_apps(self, platform_id: str) -> list[Any]:
        """Raw app collection, whatever its shape on the platform."""
        config = self.registry.get(platform_id)
        resp = await self._request(config, "GET", "/apps")
        data = self._json(config, resp)
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            return data.get("apps") or data.get("data") or []
        return []

    async def register_webhook(
        self,
        platform_id: str,
        callback_url: str,
        requested_events: list[str],
    ) -> WebhookRegistration:
        """Register a webhook for the allowlisted subset of the requested events."""
        config = self.registry.get(platform_id)

        events: list[str] = []
        dropped: list[str] = []
        for event in requested_events:
            if event in config.webhook_events:
                if event not in events:
                    events.append(event)
            elif event not in dropped:
                dropped.append(event)
        if not events:
            raise UnsupportedEvents(platform_id, list(requested_events))
        if dropped:
            logger.info("webhook_events_dropped", platform=platform_id, dropped=dropped)

        secret = secrets.token_hex(32)
        resp = await self._request(
            config,
            "POST",
            "/webhooks",
            body={"url": callback_url, "events": events, "secret": secret},
        )
        data = self._json(config, resp) if resp.content else {}

        await self.auth.attach_webhook_secret(platform_id, secret)
        remote_id = data.get("id") if isinstance(data, dict) else None
        logger.info("webhook_registered", platform=platform_id, events=events)
        return WebhookRegistration(
            platform_id=platform_id,
            callback_url=callback_url,
            events=events,
            dropped_events=dropped,
            remote_id=str(remote_id) if remote_id is not None else None,
        )

    async def unregister_webhook(self, platform_id: str, remote_id: str) -> bool:
        """Delete a webhook on the platform and forget its signing secret.

        Returns False when the platform no longer knows the webhook (404);
        the local secret is cleared either way.
        """
        config = self.registry.get(platform_id)
        removed = True
        try:
            await self._request(config, "DELETE", f"/webhooks/{_segment(remote_id)}")
        except RemoteError as exc:
            if exc.status_code != 404:
                raise
            removed = False

        await self.auth.detach_webhook_secret(platform_id)
        logger.info("webhook_unregistered", platform=platform_id, remote_id=remote_id, removed=removed)
        return removed
