"""
Gateway Integrations — outbound side of the gateway.

- PlatformRegistry: static catalog of supported platforms
- CredentialStore: per-platform OAuth tokens / API keys
- AuthManager: OAuth2 and API-key lifecycle (authorize, exchange, refresh, disconnect)
- PlatformClient: sync / export / deploy / list / webhook registration
- DataNormalizer: platform app records → CanonicalAppRecord
"""
from gateway.integrations.registry import (
    DEFAULT_PLATFORMS,
    INTERNAL_SOURCE,
    UNKNOWN_SOURCE,
    PlatformConfig,
    PlatformRegistry,
    default_registry,
)
from gateway.integrations.credentials import (
    CredentialStore,
    Credentials,
)
from gateway.integrations.oauth_manager import (
    AuthManager,
    ConnectionStatus,
)
from gateway.integrations.normalizer import (
    CanonicalAppRecord,
    DataNormalizer,
    FieldMapping,
    SchemaMapping,
    TRANSFORMS,
)
from gateway.integrations.platform_client import (
    IntegrationHealth,
    PlatformClient,
    WebhookRegistration,
)

__all__ = [
    # Registry
    "DEFAULT_PLATFORMS",
    "INTERNAL_SOURCE",
    "UNKNOWN_SOURCE",
    "PlatformConfig",
    "PlatformRegistry",
    "default_registry",
    # Credentials
    "CredentialStore",
    "Credentials",
    # Auth
    "AuthManager",
    "ConnectionStatus",
    # Normalizer
    "CanonicalAppRecord",
    "DataNormalizer",
    "FieldMapping",
    "SchemaMapping",
    "TRANSFORMS",
    # Client
    "IntegrationHealth",
    "PlatformClient",
    "WebhookRegistration",
]
