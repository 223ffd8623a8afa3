"""Pydantic schemas for API request/response validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class OAuthExchangeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)
    state: Optional[str] = None


class ApiKeyRequest(BaseModel):
    api_key: str = Field(..., min_length=1)
    secret_key: Optional[str] = None


class DeployRequest(BaseModel):
    app_config: dict[str, Any] = Field(default_factory=dict)


class WebhookRegistrationRequest(BaseModel):
    callback_url: str = Field(..., min_length=1)
    events: list[str] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class PlatformSummary(BaseModel):
    platform_id: str
    api_base_url: str
    webhook_events: list[str]
    required_scopes: list[str]
    export_formats: list[str]
    sync_capabilities: list[str]
    status: str


class ConnectionResponse(BaseModel):
    platform_id: str
    status: str
    expires_at: Optional[str] = None


class AuthorizeResponse(BaseModel):
    platform_id: str
    authorize_url: str


class WebhookAck(BaseModel):
    success: bool
    message: str
    actions: list[str] = Field(default_factory=list)
    errors: Optional[list[str]] = None
    event_id: str
