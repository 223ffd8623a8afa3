"""Integrations API router — connect, inspect and drive external platforms.

Every path is keyed by platform id (github, bolt.new, vercel.com, ...).
Gateway errors propagate to the app-wide handler in api.errors, which
turns them into 4xx/5xx responses.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from api.dependencies import get_gateway
from api.schemas import (
    ApiKeyRequest,
    AuthorizeResponse,
    ConnectionResponse,
    DeployRequest,
    OAuthExchangeRequest,
    PlatformSummary,
    WebhookRegistrationRequest,
)
from gateway.integrations.normalizer import CanonicalAppRecord
from gateway.service import IntegrationGateway

router = APIRouter()


def _record(record: Any) -> Any:
    if isinstance(record, CanonicalAppRecord):
        return record.to_dict()
    return record


def _connection(gateway: IntegrationGateway, platform: str) -> ConnectionResponse:
    credentials = gateway.credentials.get(platform)
    return ConnectionResponse(
        platform_id=platform,
        status=gateway.auth.status(platform).value,
        expires_at=credentials.expires_at.isoformat() if credentials and credentials.expires_at else None,
    )


# ============================================================================
# Catalog
# ============================================================================

@router.get("/platforms", response_model=list[PlatformSummary])
async def list_platforms(gateway: IntegrationGateway = Depends(get_gateway)):
    """Every supported platform with its connection status."""
    return [
        PlatformSummary(
            platform_id=config.platform_id,
            api_base_url=config.api_base_url,
            webhook_events=sorted(config.webhook_events),
            required_scopes=list(config.required_scopes),
            export_formats=sorted(config.export_formats),
            sync_capabilities=sorted(config.sync_capabilities),
            status=gateway.auth.status(config.platform_id).value,
        )
        for config in gateway.registry
    ]


# ============================================================================
# Credentials
# ============================================================================

@router.get("/{platform}/authorize", response_model=AuthorizeResponse)
async def authorize(
    platform: str,
    redirect_uri: str = Query(..., min_length=1),
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Authorization URL to send the user to."""
    url = gateway.auth.build_authorize_url(platform, redirect_uri)
    return AuthorizeResponse(platform_id=platform, authorize_url=url)


@router.post("/{platform}/oauth/exchange", response_model=ConnectionResponse)
async def oauth_exchange(
    platform: str,
    request: OAuthExchangeRequest,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    await gateway.auth.exchange_code(platform, request.code, request.redirect_uri, request.state)
    return _connection(gateway, platform)


@router.post("/{platform}/api-key", response_model=ConnectionResponse)
async def set_api_key(
    platform: str,
    request: ApiKeyRequest,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Validate an API key against the platform, then store it."""
    await gateway.auth.set_api_key(platform, request.api_key, request.secret_key)
    return _connection(gateway, platform)


@router.get("/{platform}/status")
async def connection_status(
    platform: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    gateway.registry.get(platform)
    credentials = gateway.credentials.get(platform)
    return {
        **_connection(gateway, platform).model_dump(),
        "credentials": credentials.to_dict() if credentials else None,
        "health": gateway.client.health(platform).to_dict(),
    }


@router.post("/{platform}/refresh", response_model=ConnectionResponse)
async def refresh(
    platform: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    gateway.registry.get(platform)
    await gateway.auth.refresh_if_needed(platform)
    return _connection(gateway, platform)


@router.delete("/{platform}", status_code=204)
async def disconnect(
    platform: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Forget the platform's credentials and webhook handlers."""
    gateway.registry.get(platform)
    await gateway.auth.disconnect(platform)
    return Response(status_code=204)


# ============================================================================
# Apps
# ============================================================================

@router.get("/{platform}/apps")
async def list_apps(
    platform: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    apps = await gateway.client.list_apps(platform)
    return {"data": apps, "count": len(apps)}


@router.get("/{platform}/apps/{app_id}")
async def sync_app(
    platform: str,
    app_id: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Fetch one app and return it in canonical form when a mapping exists."""
    return _record(await gateway.client.sync_app(platform, app_id))


@router.get("/{platform}/apps/{app_id}/export")
async def export_app(
    platform: str,
    app_id: str,
    export_format: str = Query(..., alias="format", min_length=1),
    gateway: IntegrationGateway = Depends(get_gateway),
):
    content = await gateway.client.export_app(platform, app_id, export_format)
    if isinstance(content, bytes):
        return Response(
            content=content,
            media_type="application/octet-stream",
            headers={"Content-Disposition": f'attachment; filename="{app_id}.{export_format}"'},
        )
    return PlainTextResponse(content)


@router.post("/{platform}/deploy", status_code=201)
async def deploy_app(
    platform: str,
    request: DeployRequest,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    return _record(await gateway.client.deploy_app(platform, request.app_config))


# ============================================================================
# Webhook registration
# ============================================================================

@router.post("/{platform}/webhooks", status_code=201)
async def register_webhook(
    platform: str,
    request: WebhookRegistrationRequest,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Register a webhook for the allowlisted subset of the requested events."""
    registration = await gateway.client.register_webhook(platform, request.callback_url, request.events)
    return registration.to_dict()


@router.delete("/{platform}/webhooks/{remote_id}", status_code=204)
async def unregister_webhook(
    platform: str,
    remote_id: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Remove a webhook from the platform; a webhook the platform no longer knows counts as removed."""
    await gateway.client.unregister_webhook(platform, remote_id)
    return Response(status_code=204)
