"""SQLAlchemy models for gateway persistence."""
from gateway.models.base import AuditMixin, Base
from gateway.models.webhook_event import WebhookEventRecord

__all__ = ["AuditMixin", "Base", "WebhookEventRecord"]
