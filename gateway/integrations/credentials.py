"""
Credential Store — per-platform OAuth tokens and API keys.

Records are immutable; every change replaces the whole record so a reader
never sees half of an update.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credentials:
    """Platform-scoped credentials."""
    access_token: str | None = None
    refresh_token: str | None = None
    api_key: str | None = None
    secret_key: str | None = None
    webhook_secret: str | None = None
    expires_at: datetime | None = None

    @property
    def usable(self) -> bool:
        # exactly one bearer source
        return bool(self.access_token) != bool(self.api_key)

    @property
    def bearer_token(self) -> str | None:
        return self.access_token or self.api_key

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utcnow())

    def to_dict(self) -> dict[str, Any]:
        """Redacted view, safe to return from the API."""
        return {
            "auth_type": "oauth2" if self.access_token else "api_key",
            "has_refresh_token": bool(self.refresh_token),
            "has_webhook_secret": bool(self.webhook_secret),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


class CredentialStore:
    """In-memory credential store keyed by platform id."""

    def __init__(self):
        self._credentials: dict[str, Credentials] = {}

    def get(self, platform_id: str) -> Credentials | None:
        return self._credentials.get(platform_id)

    def set(self, platform_id: str, credentials: Credentials) -> None:
        """Replace the stored record for a platform."""
        if not credentials.usable:
            raise ValueError("Credentials need exactly one of access_token or api_key")
        self._credentials[platform_id] = credentials

    def delete(self, platform_id: str) -> bool:
        return self._credentials.pop(platform_id, None) is not None

    def is_expired(self, platform_id: str, now: datetime | None = None) -> bool:
        credentials = self._credentials.get(platform_id)
        if credentials is None:
            return False
        return credentials.is_expired(now)

    def platforms(self) -> list[str]:
        return list(self._credentials)
