"""Webhook API router — inbound endpoint plus event inspection and replay.

POST /webhooks accepts every supported sender; the pipeline decides the
source from the headers. Only POST and OPTIONS are routed, so any other
method gets a 405 from the router.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.dependencies import get_gateway
from gateway.errors import EventNotFound
from gateway.service import IntegrationGateway

router = APIRouter(prefix="/webhooks")


# ============================================================================
# Inbound
# ============================================================================

@router.post("")
async def receive_webhook(
    request: Request,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Verify, route and record one webhook delivery."""
    body = await request.body()
    outcome = await gateway.pipeline.ingest(body, request.headers)
    return JSONResponse(
        status_code=outcome.status_code,
        content={**outcome.result.to_dict(), "event_id": outcome.event.id},
    )


@router.options("")
async def webhook_preflight():
    return PlainTextResponse("ok")


# ============================================================================
# Event inspection
# ============================================================================

@router.get("/events")
async def list_events(
    source: Optional[str] = None,
    processed: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=500),
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Recorded webhook events, newest first."""
    events = await gateway.store.list(source=source, processed=processed, limit=limit)
    return {"data": [e.to_dict() for e in events], "count": len(events)}


@router.get("/events/{event_id}")
async def get_event(
    event_id: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    event = await gateway.store.get(event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event.to_dict()


@router.post("/events/{event_id}/replay")
async def replay_event(
    event_id: str,
    gateway: IntegrationGateway = Depends(get_gateway),
):
    """Re-run an unprocessed event through verification and routing."""
    result = await gateway.pipeline.replay(event_id)
    event = await gateway.store.get(event_id)
    return {
        **result.to_dict(),
        "event_id": event_id,
        "retry_count": event.retry_count if event else None,
    }
