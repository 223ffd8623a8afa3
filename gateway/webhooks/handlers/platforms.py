"""Handlers for builder and deployment platform events (bolt.new, vercel.com, ...)."""
from __future__ import annotations

from gateway.webhooks.handlers.host import HostApplication
from gateway.webhooks.models import ProcessingResult, WebhookEvent
from gateway.webhooks.payloads import parse_payload

FAILURE_MARKERS = ("failed", "error")


def is_failure_event(event_type: str) -> bool:
    return any(marker in event_type for marker in FAILURE_MARKERS)


async def handle_platform_event(event: WebhookEvent, host: HostApplication) -> ProcessingResult:
    """Record any allowlisted platform event on the host's external-app record."""
    data = parse_payload(event).model_dump()
    actions: list[str] = []

    await host.update_external_app(event.source, event.type, data)
    actions.append("external_app_updated")

    if is_failure_event(event.type):
        user_id = data.get("userId") or data.get("user_id")
        if user_id:
            await host.notify_user(str(user_id), f"{event.source}_{event.type}", data)
            actions.append("user_notified")

    return ProcessingResult(
        success=True,
        message=f"Processed {event.source} {event.type} event",
        actions=actions,
    )
