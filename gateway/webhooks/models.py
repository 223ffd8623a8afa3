"""Webhook event and processing result records."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
import json
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ProcessingResult:
    """Outcome of handling one webhook event."""
    success: bool
    message: str
    actions: list[str] = field(default_factory=list)
    errors: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "actions": list(self.actions),
        }
        if self.errors:
            data["errors"] = list(self.errors)
        return data


@dataclass
class WebhookEvent:
    """An inbound webhook as received and persisted.

    `payload` is the request body as text. It is only parsed at the
    handler boundary, so unparseable bodies are still recorded.
    `raw_body` keeps the exact bytes that were signed, for replay.
    """
    type: str
    source: str
    payload: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_utcnow)
    signature: str | None = None
    processed: bool = False
    retry_count: int = 0
    processing_log: list[str] = field(default_factory=list)
    raw_body: bytes | None = field(default=None, repr=False)

    def log(self, message: str) -> None:
        self.processing_log.append(message)

    def body(self) -> bytes:
        """Bytes the signature was computed over."""
        if self.raw_body is not None:
            return self.raw_body
        return self.payload.encode("utf-8")

    def json(self) -> Any:
        """Parse the payload. Raises ValueError on malformed JSON."""
        return json.loads(self.payload)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
            "signature": self.signature,
            "processed": self.processed,
            "retry_count": self.retry_count,
            "processing_log": list(self.processing_log),
        }
