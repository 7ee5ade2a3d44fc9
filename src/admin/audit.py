"""Audit trail subscriber: keeps recent SystemEvents per conversation in memory.

Registered as a global subscriber (receives ALL events). Conversation state
is not persisted across restarts, so neither is its audit trail. A deleted
conversation takes its trail with it; expired ones stay until the trail
reaches its session limit, oldest activity first.

Never raises: failures are logged but never propagate to the event system.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict, deque
from typing import Any

from src.config import settings
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


class AuditTrail:
    """Bounded history of emitted events, per session and in number of sessions."""

    def __init__(self, max_events_per_session: int = 200, max_sessions: int = 10_000) -> None:
        self.max_events_per_session = max_events_per_session
        self.max_sessions = max_sessions
        self._events: OrderedDict[uuid.UUID | None, deque[SystemEvent]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._events)

    def record(self, event: SystemEvent) -> None:
        """Append an event to its session's history, dropping the stalest session if full."""
        history = self._events.get(event.session_id)
        if history is None:
            history = deque(maxlen=self.max_events_per_session)
            self._events[event.session_id] = history
            while len(self._events) > self.max_sessions:
                dropped, _ = self._events.popitem(last=False)
                logger.debug("Audit trail full, dropped session %s", dropped)
        else:
            self._events.move_to_end(event.session_id)
        history.append(event)

    def entries(self, session_id: uuid.UUID) -> list[dict[str, Any]]:
        """Serializable history for a session, oldest first."""
        return [event.model_dump(mode="json") for event in self._events.get(session_id, ())]

    def forget(self, session_id: uuid.UUID) -> None:
        self._events.pop(session_id, None)


audit_trail = AuditTrail(
    max_events_per_session=settings.audit_trail_size,
    max_sessions=settings.sessions.audit_max_sessions,
)


async def audit_on_event(event: SystemEvent) -> None:
    """Record a SystemEvent in the in-memory audit trail.

    SESSION_DELETED removes the conversation's trail instead of extending it.
    Failures are logged and swallowed: auditing must never break a
    conversation turn.
    """
    try:
        if event.event_type == EventType.SESSION_DELETED and event.session_id is not None:
            audit_trail.forget(event.session_id)
            return
        audit_trail.record(event)
    except Exception:
        logger.exception(
            "Failed to record audit event: %s (session=%s)",
            event.event_type.value,
            event.session_id,
        )
