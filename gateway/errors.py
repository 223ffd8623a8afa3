"""
Gateway error taxonomy.

Credential and configuration errors are local and recoverable: they are
raised before any state is written. RemoteError carries the platform's own
status text so operators can look it up in the platform docs.
"""
from __future__ import annotations


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class ConfigurationError(GatewayError):
    """Required configuration (usually a secret) is missing or invalid."""


class UnsupportedPlatform(GatewayError):
    def __init__(self, platform_id: str):
        super().__init__(f"Platform {platform_id} not supported")
        self.platform_id = platform_id


class NoCredentials(GatewayError):
    def __init__(self, platform_id: str):
        super().__init__(f"No credentials found for platform {platform_id}")
        self.platform_id = platform_id


class CredentialsExpired(NoCredentials):
    """Stored token expired and could not be refreshed; the platform must be reconnected."""

    def __init__(self, platform_id: str):
        GatewayError.__init__(self, f"Credentials for platform {platform_id} expired; reconnect required")
        self.platform_id = platform_id


class InvalidCredentials(GatewayError):
    def __init__(self, platform_id: str, reason: str = ""):
        message = f"Invalid API credentials for {platform_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.platform_id = platform_id
        self.reason = reason


class OAuthExchangeFailed(GatewayError):
    def __init__(self, platform_id: str, reason: str):
        super().__init__(f"OAuth exchange failed for {platform_id}: {reason}")
        self.platform_id = platform_id
        self.reason = reason


class RemoteError(GatewayError):
    """Non-2xx (or unreachable) response from a platform API."""

    def __init__(self, platform_id: str, status_code: int, status_text: str):
        super().__init__(f"{platform_id} responded {status_code}: {status_text}")
        self.platform_id = platform_id
        self.status_code = status_code
        self.status_text = status_text


class SignatureInvalid(GatewayError):
    pass


class UnsupportedFormat(GatewayError):
    def __init__(self, platform_id: str, export_format: str):
        super().__init__(f"Export format {export_format} not supported for {platform_id}")
        self.platform_id = platform_id
        self.export_format = export_format


class UnsupportedEvents(GatewayError):
    def __init__(self, platform_id: str, requested: list[str]):
        super().__init__(
            f"None of the requested events are supported by {platform_id}: {', '.join(requested) or '-'}"
        )
        self.platform_id = platform_id
        self.requested = requested


class EventNotFound(GatewayError):
    def __init__(self, event_id: str):
        super().__init__(f"Webhook event not found: {event_id}")
        self.event_id = event_id


class RetriesExhausted(GatewayError):
    def __init__(self, event_id: str, retry_count: int):
        super().__init__(f"Webhook event {event_id} reached its retry limit ({retry_count})")
        self.event_id = event_id
        self.retry_count = retry_count
