"""
Webhook event persistence.

Every inbound webhook is written exactly once by the pipeline; replays
update the same record. Two backends:

- InMemoryWebhookEventStore: default for development and tests
- SqlWebhookEventStore: the webhook_events table via async SQLAlchemy
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from copy import deepcopy
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gateway.database import session_scope
from gateway.models.webhook_event import WebhookEventRecord
from gateway.webhooks.models import WebhookEvent


class WebhookEventStore(ABC):
    """Storage collaborator for webhook events."""

    @abstractmethod
    async def save(self, event: WebhookEvent) -> None:
        """Insert a new event."""

    @abstractmethod
    async def update(self, event: WebhookEvent) -> None:
        """Overwrite processed / retry_count / processing_log of a stored event."""

    @abstractmethod
    async def get(self, event_id: str) -> WebhookEvent | None:
        ...

    @abstractmethod
    async def list(
        self,
        source: str | None = None,
        processed: bool | None = None,
        limit: int = 50,
    ) -> list[WebhookEvent]:
        """Newest first."""


class InMemoryWebhookEventStore(WebhookEventStore):
    """In-memory store. Replace with SqlWebhookEventStore for production."""

    def __init__(self):
        self._events: dict[str, WebhookEvent] = {}
        self._lock = asyncio.Lock()

    async def save(self, event: WebhookEvent) -> None:
        async with self._lock:
            if event.id in self._events:
                raise ValueError(f"Webhook event already stored: {event.id}")
            self._events[event.id] = deepcopy(event)

    async def update(self, event: WebhookEvent) -> None:
        async with self._lock:
            if event.id not in self._events:
                raise KeyError(event.id)
            self._events[event.id] = deepcopy(event)

    async def get(self, event_id: str) -> WebhookEvent | None:
        event = self._events.get(event_id)
        return deepcopy(event) if event else None

    async def list(
        self,
        source: str | None = None,
        processed: bool | None = None,
        limit: int = 50,
    ) -> list[WebhookEvent]:
        results = list(self._events.values())
        if source:
            results = [e for e in results if e.source == source]
        if processed is not None:
            results = [e for e in results if e.processed == processed]
        results.sort(key=lambda e: e.timestamp, reverse=True)
        return [deepcopy(e) for e in results[:limit]]

    def __len__(self) -> int:
        return len(self._events)


class SqlWebhookEventStore(WebhookEventStore):
    """webhook_events table backed store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._factory = session_factory

    async def save(self, event: WebhookEvent) -> None:
        async with session_scope(self._factory) as session:
            session.add(WebhookEventRecord.from_event(event))

    async def update(self, event: WebhookEvent) -> None:
        async with session_scope(self._factory) as session:
            row = await session.get(WebhookEventRecord, event.id)
            if row is None:
                raise KeyError(event.id)
            row.apply(event)

    async def get(self, event_id: str) -> WebhookEvent | None:
        async with self._factory() as session:
            row = await session.get(WebhookEventRecord, event_id)
            return row.to_event() if row else None

    async def list(
        self,
        source: str | None = None,
        processed: bool | None = None,
        limit: int = 50,
    ) -> list[WebhookEvent]:
        stmt = select(WebhookEventRecord)
        if source:
            stmt = stmt.where(WebhookEventRecord.source == source)
        if processed is not None:
            stmt = stmt.where(WebhookEventRecord.processed == processed)
        stmt = stmt.order_by(WebhookEventRecord.timestamp.desc()).limit(limit)

        async with self._factory() as session:
            result = await session.execute(stmt)
            return [row.to_event() for row in result.scalars().all()]
