"""Persisted webhook event table."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gateway.models.base import AuditMixin, Base
from gateway.webhooks.models import WebhookEvent


class WebhookEventRecord(AuditMixin, Base):
    """One row per inbound webhook, whatever the processing outcome."""

    __tablename__ = "webhook_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    type: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="")
    signature: Mapped[str | None] = mapped_column(String(512), nullable=True)
    processed: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False, default=False)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processing_log: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    raw_body: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    @classmethod
    def from_event(cls, event: WebhookEvent) -> "WebhookEventRecord":
        return cls(
            id=event.id,
            type=event.type,
            source=event.source,
            timestamp=event.timestamp,
            payload=event.payload,
            signature=event.signature,
            processed=event.processed,
            retry_count=event.retry_count,
            processing_log=list(event.processing_log),
            raw_body=event.raw_body,
        )

    def apply(self, event: WebhookEvent) -> None:
        """Copy the mutable fields of an event onto this row."""
        self.processed = event.processed
        self.retry_count = event.retry_count
        self.processing_log = list(event.processing_log)

    def to_event(self) -> WebhookEvent:
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            # SQLite drops the offset
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return WebhookEvent(
            id=self.id,
            type=self.type,
            source=self.source,
            timestamp=timestamp,
            payload=self.payload,
            signature=self.signature,
            processed=self.processed,
            retry_count=self.retry_count,
            processing_log=list(self.processing_log or []),
            raw_body=self.raw_body,
        )
