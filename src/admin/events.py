"""Conversation event bus.

The conversation store emits one SystemEvent per lifecycle change and per
turn; subscribers (the audit trail) receive every event from a background
worker, so a turn never waits on them.

Usage:
    from src.admin.events import emit, subscribe

    subscribe(audit_on_event)  # async def audit_on_event(event: SystemEvent) -> None
    await emit(SystemEvent(event_type=EventType.SESSION_STARTED, session_id=session_id))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

_subscribers: list[EventHandler] = []
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


def subscribe(handler: EventHandler) -> None:
    """Register a handler for every emitted event. Registering twice is a no-op."""
    if handler not in _subscribers:
        _subscribers.append(handler)
        logger.info("Registered event subscriber: %s", handler.__name__)


async def emit(event: SystemEvent) -> None:
    """Queue an event for the background worker, starting it if needed."""
    global _queue, _worker_task
    if _queue is None:
        _queue = asyncio.Queue()
    if _worker_task is None or _worker_task.done():
        _worker_task = asyncio.create_task(_drain(_queue))

    await _queue.put(event)
    logger.debug("Event emitted: %s (session=%s)", event.event_type.value, event.session_id)


async def dispatch(event: SystemEvent) -> None:
    """Deliver one event to each subscriber in registration order.

    A failing subscriber is logged and skipped; the rest still run.
    """
    for handler in list(_subscribers):
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "Subscriber %s failed for %s (session=%s)",
                handler.__name__,
                event.event_type.value,
                event.session_id,
            )


async def _drain(queue: asyncio.Queue[SystemEvent]) -> None:
    while True:
        event = await queue.get()
        try:
            await dispatch(event)
        finally:
            queue.task_done()


async def start_event_system() -> None:
    """Create the queue and worker. Called from the FastAPI lifespan."""
    global _queue, _worker_task
    if _worker_task is None or _worker_task.done():
        _queue = asyncio.Queue()
        _worker_task = asyncio.create_task(_drain(_queue))
    logger.info("Event system started with %d subscribers", len(_subscribers))


async def stop_event_system() -> None:
    """Deliver pending events, then stop the worker."""
    global _queue, _worker_task

    if _worker_task is not None and not _worker_task.done():
        if _queue is not None:
            await _queue.join()
        _worker_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _worker_task

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
