"""Integration Gateway API — FastAPI entry point.

Registers middleware, error handlers, routers, and lifecycle hooks.
Settings are loaded from the environment when the app is created, so a
misconfigured process fails at startup instead of on the first request.

    uvicorn api.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import install_error_handlers
from api.middleware import RequestContextMiddleware
from api.routers.integrations import router as integrations_router
from api.routers.webhooks import router as webhooks_router
from gateway.config import GatewaySettings
from gateway.database import close_db, init_db
from gateway.integrations.registry import default_registry
from gateway.logging import configure_logging
from gateway.observability import setup_otel
from gateway.service import IntegrationGateway, build_gateway
from gateway.webhooks.handlers.dispatch import pending_tasks

VERSION = "0.1.0"

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[GatewaySettings] = None,
    gateway: Optional[IntegrationGateway] = None,
) -> FastAPI:
    """Build the API around a gateway (built from settings when not given)."""
    if gateway is not None:
        settings = gateway.settings
    elif settings is None:
        settings = GatewaySettings.from_env(default_registry())

    configure_logging(settings.log_level, settings.log_format)
    if gateway is None:
        gateway = build_gateway(settings, tracer=setup_otel())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        if gateway.engine is not None:
            await init_db(gateway.engine)
        logger.info("gateway_api_started", platforms=gateway.registry.ids())
        yield
        logger.info("gateway_api_stopping", background_tasks=pending_tasks())
        if gateway.engine is not None:
            await close_db(gateway.engine)

    app = FastAPI(
        title="Integration Gateway",
        description="OAuth, sync, export and webhook gateway for code hosts and app-builder platforms",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request id / log context
    app.add_middleware(RequestContextMiddleware)

    install_error_handlers(app)

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(webhooks_router, tags=["Webhooks"])
    app.include_router(integrations_router, prefix="/integrations", tags=["Integrations"])

    # -----------------------------------------------------------------------
    # Health & root
    # -----------------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION}

    @app.get("/")
    async def root():
        return {
            "name": "Integration Gateway",
            "version": VERSION,
            "docs": "/docs",
            "platforms": gateway.registry.ids(),
        }

    return app
