"""
Integration Gateway service object.

Wires the registry, credential store, auth manager, platform client,
normalizer, handler registry and webhook pipeline into one object that the
HTTP layer keeps on app.state.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from gateway.config import GatewaySettings
from gateway.database import create_engine, create_session_factory
from gateway.integrations.credentials import CredentialStore
from gateway.integrations.normalizer import DataNormalizer
from gateway.integrations.oauth_manager import AuthManager
from gateway.integrations.platform_client import PlatformClient
from gateway.integrations.registry import PlatformRegistry, default_registry
from gateway.webhooks.handler_registry import EventHandlerRegistry
from gateway.webhooks.handlers import HostApplication, register_default_handlers
from gateway.webhooks.pipeline import WebhookPipeline
from gateway.webhooks.store import (
    InMemoryWebhookEventStore,
    SqlWebhookEventStore,
    WebhookEventStore,
)

logger = structlog.get_logger(__name__)


@dataclass
class IntegrationGateway:
    settings: GatewaySettings
    registry: PlatformRegistry
    credentials: CredentialStore
    handlers: EventHandlerRegistry
    auth: AuthManager
    normalizer: DataNormalizer
    client: PlatformClient
    store: WebhookEventStore
    pipeline: WebhookPipeline
    host: HostApplication
    engine: AsyncEngine | None = None


def build_gateway(
    settings: GatewaySettings,
    registry: PlatformRegistry | None = None,
    store: WebhookEventStore | None = None,
    host: HostApplication | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    tracer: Any = None,
) -> IntegrationGateway:
    """Build a fully wired gateway.

    The webhook store defaults to SQL when settings.database_url is set and
    to memory otherwise. transport is handed to every outbound httpx client,
    which is how tests stub the platforms.
    """
    registry = registry or default_registry()
    host = host or HostApplication()
    credentials = CredentialStore()
    handlers = EventHandlerRegistry()
    register_default_handlers(handlers, registry, host)

    engine = None
    if store is None:
        if settings.database_url:
            engine = create_engine(settings.database_url)
            store = SqlWebhookEventStore(create_session_factory(engine))
        else:
            store = InMemoryWebhookEventStore()

    auth = AuthManager(registry, credentials, settings, handlers, transport=transport)
    normalizer = DataNormalizer()
    client = PlatformClient(
        registry,
        auth,
        normalizer,
        timeout=settings.http_timeout,
        user_agent=settings.user_agent,
        transport=transport,
    )
    pipeline = WebhookPipeline(registry, credentials, settings, handlers, store, tracer=tracer)

    logger.info(
        "gateway_built",
        platforms=len(registry),
        handlers=handlers.handler_count,
        store=type(store).__name__,
    )
    return IntegrationGateway(
        settings=settings,
        registry=registry,
        credentials=credentials,
        handlers=handlers,
        auth=auth,
        normalizer=normalizer,
        client=client,
        store=store,
        pipeline=pipeline,
        host=host,
        engine=engine,
    )
