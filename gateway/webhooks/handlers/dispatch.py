"""Fire-and-forget dispatch for long-running host work."""
from __future__ import annotations
from typing import Any, Coroutine
import asyncio

import structlog

logger = structlog.get_logger(__name__)

# Strong references so pending tasks are not garbage collected.
_background_tasks: set[asyncio.Task] = set()


def fire_and_forget(coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task:
    """Schedule a coroutine without awaiting it. Failures are logged, never raised."""
    task = asyncio.create_task(coro, name=label)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("background_task_failed", task=task.get_name(), error=str(exc))


def pending_tasks() -> int:
    return len(_background_tasks)
