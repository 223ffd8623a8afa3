"""
Auth Manager — credential lifecycle for external platforms.

- Authorization URL with CSRF state
- Authorization code exchange
- API key validation
- Single-flight token refresh per platform
- Disconnect (credentials + webhook handlers)
- Connection status derived from the Credential Store
"""
from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import urlencode
import asyncio
import secrets
import time

import httpx
import structlog

from gateway.errors import InvalidCredentials, NoCredentials, OAuthExchangeFailed
from gateway.integrations.credentials import CredentialStore, Credentials, utcnow
from gateway.integrations.registry import PlatformRegistry
from gateway.webhooks.handler_registry import EventHandlerRegistry

if TYPE_CHECKING:
    from gateway.config import GatewaySettings

logger = structlog.get_logger(__name__)

# Pending authorization states expire after this many seconds
STATE_TTL_SECONDS = 600
MAX_PENDING_STATES = 10_000


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    EXPIRED = "expired"
    DISCONNECTED = "disconnected"


class AuthManager:
    """Manages OAuth2 and API-key credentials across platforms."""

    def __init__(
        self,
        registry: PlatformRegistry,
        store: CredentialStore,
        settings: GatewaySettings,
        handlers: EventHandlerRegistry,
        transport: httpx.AsyncBaseTransport | None = None,
        state_ttl: float = STATE_TTL_SECONDS,
        max_states: int = MAX_PENDING_STATES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.registry = registry
        self.store = store
        self.settings = settings
        self.handlers = handlers
        self._transport = transport
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.state_ttl = state_ttl
        self.max_states = max_states
        self._clock = clock
        self._states: dict[str, tuple[str, float]] = {}  # state -> (platform_id, issued_at)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self.settings.oauth_timeout)

    # --- Authorize ---

    def build_authorize_url(self, platform_id: str, redirect_uri: str) -> str:
        """Generate the platform's authorization URL with a fresh CSRF state."""
        config = self.registry.get(platform_id)
        client = self.settings.secrets_for(platform_id)

        self._prune_states()
        state = secrets.token_urlsafe(32)
        self._states[state] = (platform_id, self._clock())
        while len(self._states) > self.max_states:
            # dicts keep insertion order, so the first key is the oldest
            del self._states[next(iter(self._states))]

        params = {
            "client_id": client.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(config.required_scopes),
            "response_type": "code",
            "state": state,
        }
        return f"{config.oauth_authorize_url}?{urlencode(params)}"

    def _prune_states(self) -> None:
        cutoff = self._clock() - self.state_ttl
        expired = [s for s, (_, issued) in self._states.items() if issued <= cutoff]
        for state in expired:
            del self._states[state]

    @property
    def pending_states(self) -> int:
        return len(self._states)

    # --- Code exchange ---

    async def exchange_code(
        self,
        platform_id: str,
        code: str,
        redirect_uri: str,
        state: str | None = None,
    ) -> Credentials:
        """Exchange an authorization code for tokens and store them."""
        config = self.registry.get(platform_id)
        client = self.settings.secrets_for(platform_id)

        if state is not None:
            self._prune_states()
            pending = self._states.pop(state, None)
            if pending is None or pending[0] != platform_id:
                raise OAuthExchangeFailed(platform_id, "state mismatch or expired")

        data = await self._post_token(
            platform_id,
            config.token_url,
            {
                "client_id": client.client_id,
                "client_secret": client.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        credentials = Credentials(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=self._expiry(data),
        )

        async with self._locks[platform_id]:
            self.store.set(platform_id, credentials)
        logger.info("oauth_connected", platform=platform_id, expires_at=credentials.expires_at)
        return credentials

    async def _post_token(self, platform_id: str, url: str, body: dict[str, str]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(url, json=body, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            raise OAuthExchangeFailed(platform_id, str(exc) or type(exc).__name__) from exc

        if not resp.is_success:
            raise OAuthExchangeFailed(platform_id, resp.reason_phrase or f"HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise OAuthExchangeFailed(platform_id, "malformed token payload") from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise OAuthExchangeFailed(platform_id, "malformed token payload")
        return data

    @staticmethod
    def _expiry(data: dict[str, Any]):
        expires_in = data.get("expires_in")
        if not expires_in:
            return None
        try:
            return utcnow() + timedelta(seconds=int(expires_in))
        except (TypeError, ValueError):
            return None

    # --- API keys ---

    async def set_api_key(
        self,
        platform_id: str,
        api_key: str,
        secret_key: str | None = None,
    ) -> Credentials:
        """Validate an API key against the platform and store it on success."""
        config = self.registry.get(platform_id)
        url = f"{config.api_base_url.rstrip('/')}/user"

        try:
            async with self._client() as client:
                resp = await client.get(
                    url,
                    headers={"Authorization": f"Bearer {api_key}", "Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("api_key_validation_error", platform=platform_id, error=str(exc))
            raise InvalidCredentials(platform_id, str(exc)) from exc

        if not resp.is_success:
            logger.warning("api_key_rejected", platform=platform_id, status=resp.status_code)
            raise InvalidCredentials(platform_id, resp.reason_phrase)

        credentials = Credentials(api_key=api_key, secret_key=secret_key)
        async with self._locks[platform_id]:
            self.store.set(platform_id, credentials)
        logger.info("api_key_connected", platform=platform_id)
        return credentials

    # --- Refresh ---

    async def refresh_if_needed(self, platform_id: str) -> bool:
        """Refresh an expired token.

        Returns True when the stored credential is usable afterwards. False
        means the caller has to reconnect the platform.
        """
        async with self._locks[platform_id]:
            credentials = self.store.get(platform_id)
            if credentials is None:
                return False
            if not credentials.is_expired():
                return True
            if not credentials.refresh_token:
                logger.info("token_expired_without_refresh", platform=platform_id)
                return False

            config = self.registry.get(platform_id)
            client = self.settings.secrets_for(platform_id)
            try:
                data = await self._post_token(
                    platform_id,
                    config.token_url,
                    {
                        "client_id": client.client_id,
                        "client_secret": client.client_secret,
                        "refresh_token": credentials.refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
            except OAuthExchangeFailed as exc:
                logger.warning("token_refresh_failed", platform=platform_id, reason=exc.reason)
                return False

            self.store.set(
                platform_id,
                replace(
                    credentials,
                    access_token=data["access_token"],
                    refresh_token=data.get("refresh_token") or credentials.refresh_token,
                    expires_at=self._expiry(data),
                ),
            )
            logger.info("token_refreshed", platform=platform_id)
            return True

    # --- Webhook secret ---

    async def attach_webhook_secret(self, platform_id: str, secret: str) -> Credentials:
        async with self._locks[platform_id]:
            credentials = self.store.get(platform_id)
            if credentials is None:
                raise NoCredentials(platform_id)
            updated = replace(credentials, webhook_secret=secret)
            self.store.set(platform_id, updated)
            return updated

    async def detach_webhook_secret(self, platform_id: str) -> None:
        async with self._locks[platform_id]:
            credentials = self.store.get(platform_id)
            if credentials is not None and credentials.webhook_secret:
                self.store.set(platform_id, replace(credentials, webhook_secret=None))

    # --- Disconnect / status ---

    async def disconnect(self, platform_id: str) -> None:
        """Forget credentials and every webhook handler for the platform."""
        async with self._locks[platform_id]:
            self.store.delete(platform_id)
            for state in [s for s, (p, _) in self._states.items() if p == platform_id]:
                del self._states[state]
        removed = self.handlers.unregister_all(platform_id)
        logger.info("platform_disconnected", platform=platform_id, handlers_removed=removed)

    def status(self, platform_id: str) -> ConnectionStatus:
        credentials = self.store.get(platform_id)
        if credentials is None:
            return ConnectionStatus.DISCONNECTED
        if credentials.is_expired():
            return ConnectionStatus.EXPIRED
        return ConnectionStatus.CONNECTED

    def authorization_headers(self, platform_id: str) -> dict[str, str]:
        credentials = self.store.get(platform_id)
        if credentials is None or not credentials.bearer_token:
            raise NoCredentials(platform_id)
        return {"Authorization": f"Bearer {credentials.bearer_token}"}
