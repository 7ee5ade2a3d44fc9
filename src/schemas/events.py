"""SystemEvent schema: the event type emitted around enrollment conversations.

The state machine itself never emits; the conversation store does, after
each turn. Subscribers (the audit trail) consume events asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Session lifecycle
    SESSION_STARTED = "session.started"
    SESSION_STATE_CHANGED = "session.state_changed"
    SESSION_COMPLETED = "session.completed"
    SESSION_INELIGIBLE = "session.ineligible"
    SESSION_DELETED = "session.deleted"
    SESSION_EXPIRED = "session.expired"

    # Messages
    MESSAGE_RECEIVED = "message.received"
    MESSAGE_SENT = "message.sent"
    INPUT_REJECTED = "input.rejected"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Event describing something that happened to a conversation.

    Immutable once created.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional: system events have no session)
    session_id: uuid.UUID | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
