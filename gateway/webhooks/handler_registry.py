"""
Event Handler Registry — (platform, event type) to handler callbacks.

Several handlers may share a key; all of them run, in registration order.
"""
from __future__ import annotations
from typing import Any, Awaitable, Callable, Union
import inspect

from gateway.webhooks.models import ProcessingResult, WebhookEvent

HandlerResult = Union[ProcessingResult, None]
WebhookHandler = Callable[[WebhookEvent], Union[HandlerResult, Awaitable[HandlerResult]]]


def handler_key(platform: str, event_type: str) -> str:
    return f"{platform}:{event_type}"


def handler_name(handler: Any) -> str:
    func = getattr(handler, "func", handler)  # functools.partial
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


class EventHandlerRegistry:
    """Central registry of webhook handlers."""

    def __init__(self):
        self._handlers: dict[str, list[WebhookHandler]] = {}

    def register(self, platform: str, event_type: str, handler: WebhookHandler) -> None:
        """Append a handler for a platform event."""
        self._handlers.setdefault(handler_key(platform, event_type), []).append(handler)

    def handlers_for(self, platform: str, event_type: str) -> list[WebhookHandler]:
        return list(self._handlers.get(handler_key(platform, event_type), []))

    def unregister_all(self, platform: str) -> int:
        """Drop every handler keyed to a platform. Returns how many were removed."""
        prefix = f"{platform}:"
        keys = [k for k in self._handlers if k.startswith(prefix)]
        removed = 0
        for key in keys:
            removed += len(self._handlers.pop(key))
        return removed

    def keys(self) -> list[str]:
        return list(self._handlers)

    @property
    def handler_count(self) -> int:
        return sum(len(h) for h in self._handlers.values())


async def invoke_handler(handler: WebhookHandler, event: WebhookEvent) -> HandlerResult:
    """Call a sync or async handler."""
    result = handler(event)
    if inspect.isawaitable(result):
        result = await result
    return result
