"""
Webhook Ingestion Pipeline.

Received → SourceIdentified → SignatureVerified → Routed → Persisted → Acknowledged | Rejected

Every call to ingest() stores exactly one WebhookEvent, whatever happens:
unknown source, bad signature, failing handlers or an unexpected error.
Only the HTTP status tells the sender something went wrong.
"""
from __future__ import annotations
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from gateway.config import GatewaySettings
from gateway.errors import EventNotFound, RetriesExhausted, SignatureInvalid
from gateway.integrations.credentials import CredentialStore
from gateway.integrations.registry import (
    CODE_HOSTS,
    INTERNAL_EVENT_HEADER,
    INTERNAL_SIGNATURE_HEADER,
    INTERNAL_SOURCE,
    UNKNOWN_SOURCE,
    PlatformRegistry,
)
from gateway.webhooks.handler_registry import EventHandlerRegistry, handler_name, invoke_handler
from gateway.webhooks.models import ProcessingResult, WebhookEvent
from gateway.webhooks.signatures import verify_signature
from gateway.webhooks.store import WebhookEventStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WebhookSource:
    """How to recognise one sender from its headers."""
    source: str
    event_header: str
    signature_header: str


@dataclass
class IngestOutcome:
    status_code: int
    result: ProcessingResult
    event: WebhookEvent


class WebhookPipeline:
    """Verifies, routes and records inbound webhooks."""

    def __init__(
        self,
        registry: PlatformRegistry,
        credentials: CredentialStore,
        settings: GatewaySettings,
        handlers: EventHandlerRegistry,
        store: WebhookEventStore,
        tracer: Any = None,
    ):
        self.credentials = credentials
        self.settings = settings
        self.handlers = handlers
        self.store = store
        self.tracer = tracer

        # Header precedence: code hosts first (registry order), then internal,
        # then the remaining platforms.
        sources = [
            WebhookSource(p.platform_id, p.event_header, p.signature_header)
            for p in registry
            if p.event_header
        ]
        internal = WebhookSource(INTERNAL_SOURCE, INTERNAL_EVENT_HEADER, INTERNAL_SIGNATURE_HEADER)
        hosts = [s for s in sources if s.source in CODE_HOSTS]
        others = [s for s in sources if s.source not in CODE_HOSTS]
        self.sources: list[WebhookSource] = [*hosts, internal, *others]

    # --- Identification ---

    def identify(self, headers: Mapping[str, str]) -> tuple[WebhookSource | None, str]:
        """Return (source, event type). Unknown senders get (None, "unknown")."""
        for source in self.sources:
            value = headers.get(source.event_header)
            if value is not None:
                event_type = value.strip() or "unknown"
                return source, event_type
        return None, "unknown"

    def resolve_secret(self, source: str) -> str | None:
        credentials = self.credentials.get(source)
        if credentials is not None and credentials.webhook_secret:
            return credentials.webhook_secret
        return self.settings.webhook_secret_for(source)

    def check_signature(self, source: str, body: bytes, signature: str | None) -> None:
        """Raise SignatureInvalid unless the request may be processed."""
        secret = self.resolve_secret(source)
        if signature:
            if not secret:
                raise SignatureInvalid("no webhook secret configured")
            if not verify_signature(secret, body, signature):
                raise SignatureInvalid("signature mismatch")
        elif secret:
            raise SignatureInvalid("signature header missing")

    # --- Ingestion ---

    async def ingest(self, body: bytes, headers: Mapping[str, str]) -> IngestOutcome:
        """Run one inbound request through the pipeline."""
        lowered = {k.lower(): v for k, v in headers.items()}
        source, event_type = self.identify(lowered)
        signature = lowered.get(source.signature_header) if source else None

        event = WebhookEvent(
            type=event_type,
            source=source.source if source else UNKNOWN_SOURCE,
            payload=body.decode("utf-8", errors="replace"),
            signature=signature,
            raw_body=bytes(body),
        )
        log = logger.bind(event_id=event.id, source=event.source, event_type=event.type)
        event.log(f"Received {event.source} {event.type} event")

        span = (
            self.tracer.start_as_current_span(
                "webhook.ingest",
                attributes={"webhook.source": event.source, "webhook.type": event.type},
            )
            if self.tracer is not None
            else nullcontext()
        )
        with span:
            try:
                status_code, result = await self._process(event, source, body, log)
            except Exception as exc:
                log.exception("webhook_processing_crashed")
                event.processed = False
                event.log(f"Processing failed: {exc}")
                status_code = 500
                result = ProcessingResult(
                    success=False,
                    message="Webhook processing failed",
                    errors=[str(exc)],
                )

            await self.store.save(event)

        log.info("webhook_ingested", status=status_code, processed=event.processed, actions=result.actions)
        return IngestOutcome(status_code=status_code, result=result, event=event)

    async def _process(
        self,
        event: WebhookEvent,
        source: WebhookSource | None,
        body: bytes,
        log: Any,
    ) -> tuple[int, ProcessingResult]:
        if source is None:
            log.warning("webhook_source_unknown")
            event.log("Unsupported webhook source; event recorded without processing")
            return 200, ProcessingResult(
                success=True,
                message="Unsupported webhook source: event recorded",
                actions=["logged"],
            )

        try:
            self.check_signature(source.source, body, event.signature)
        except SignatureInvalid as exc:
            failure = str(exc)
            log.warning("webhook_signature_invalid", reason=failure)
            event.processed = False
            event.log(f"Signature verification failed: {failure}")
            return 401, ProcessingResult(
                success=False,
                message="Invalid signature",
                errors=[f"Signature verification failed: {failure}"],
            )
        event.log("Signature verified" if event.signature else "No signature required")

        result = await self.route(event)
        return (200 if result.success else 500), result

    # --- Routing ---

    async def route(self, event: WebhookEvent) -> ProcessingResult:
        """Fan the event out to every registered handler, best effort."""
        handlers = self.handlers.handlers_for(event.source, event.type)
        if not handlers:
            result = ProcessingResult(
                success=True,
                message=f"{event.source} {event.type} event received but not processed",
                actions=["logged"],
            )
        else:
            actions: list[str] = []
            messages: list[str] = []
            errors: list[str] = []
            for handler in handlers:
                name = handler_name(handler)
                try:
                    outcome = await invoke_handler(handler, event)
                except Exception as exc:
                    logger.exception("webhook_handler_failed", event_id=event.id, handler=name)
                    errors.append(f"{name}: {exc}")
                    continue
                if outcome is None:
                    continue
                for action in outcome.actions:
                    if action not in actions:
                        actions.append(action)
                messages.append(outcome.message)
                if not outcome.success:
                    errors.extend(outcome.errors or [f"{name}: {outcome.message}"])

            success = not errors
            message = "; ".join(m for m in messages if m) or (
                f"{event.source} {event.type} event processed"
                if success
                else f"{event.source} {event.type} processing failed"
            )
            result = ProcessingResult(
                success=success, message=message, actions=actions, errors=errors or None
            )

        event.processed = result.success
        event.log(result.message)
        if result.errors:
            event.processing_log.extend(result.errors)
        return result

    # --- Replay ---

    async def replay(self, event_id: str) -> ProcessingResult:
        """Re-run routing for a stored event that did not complete."""
        event = await self.store.get(event_id)
        if event is None:
            raise EventNotFound(event_id)
        if event.processed:
            return ProcessingResult(success=True, message="Event already processed", actions=[])
        if event.retry_count >= self.settings.max_webhook_retries:
            raise RetriesExhausted(event_id, event.retry_count)

        event.retry_count += 1
        event.log(f"Retry {event.retry_count} started")

        if event.source == UNKNOWN_SOURCE:
            event.log("Unsupported webhook source; nothing to replay")
            result = ProcessingResult(success=False, message="Unsupported webhook source", actions=[])
        else:
            try:
                self.check_signature(event.source, event.body(), event.signature)
            except SignatureInvalid as exc:
                event.log(f"Signature verification failed: {exc}")
                result = ProcessingResult(
                    success=False,
                    message="Invalid signature",
                    errors=[f"Signature verification failed: {exc}"],
                )
            else:
                result = await self.route(event)

        await self.store.update(event)
        logger.info(
            "webhook_replayed",
            event_id=event.id,
            retry_count=event.retry_count,
            processed=event.processed,
        )
        return result
