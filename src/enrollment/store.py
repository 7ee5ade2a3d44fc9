"""In-memory conversation store: the caller side of the state machine.

Holds the latest EnrollmentState per conversation, applies turns in order,
and emits SystemEvents. State lives only in process memory; a restart
starts every conversation over.

A turn reads the record, runs the machine and writes the record back with
no ``await`` in between, so turns on one conversation never interleave.

Memory is bounded: confirmed and ineligible conversations are forgotten
after ``completed_ttl``, any conversation after ``idle_ttl`` without a
turn, and past ``max_sessions`` the store drops completed conversations
first, then the least recently active ones.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field

from src.admin.events import emit
from src.config import settings
from src.enrollment.machine import advance, initialize
from src.enrollment.messages import render
from src.models.enums import EnrollmentStep
from src.schemas.enrollment import EnrollmentResponse, EnrollmentState
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

_SOURCE = "enrollment.store"


class SessionNotFoundError(KeyError):
    """No conversation exists for the given session id."""

    def __init__(self, session_id: uuid.UUID) -> None:
        super().__init__(str(session_id))
        self.session_id = session_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationRecord(BaseModel):
    """Latest turn of a conversation as seen by the caller."""

    model_config = ConfigDict(frozen=True)

    session_id: uuid.UUID
    state: EnrollmentState
    last_message: str
    is_complete: bool = False
    turns: int = 0
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class EnrollmentSessionStore:
    """Keeps one EnrollmentState per conversation id."""

    def __init__(
        self,
        max_sessions: int | None = None,
        idle_ttl: timedelta | None = None,
        completed_ttl: timedelta | None = None,
    ) -> None:
        limits = settings.sessions
        self.max_sessions = max_sessions if max_sessions is not None else limits.max_sessions
        self.idle_ttl = idle_ttl if idle_ttl is not None else timedelta(seconds=limits.idle_ttl_seconds)
        self.completed_ttl = (
            completed_ttl if completed_ttl is not None else timedelta(seconds=limits.completed_ttl_seconds)
        )
        self._records: dict[uuid.UUID, ConversationRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._records

    async def start(
        self,
        is_eligible: bool | None = None,
        current_age: int | None = None,
    ) -> ConversationRecord:
        """Create a conversation seeded with account-known facts."""
        session_id = uuid.uuid4()
        state = initialize(is_eligible=is_eligible, current_age=current_age)
        now = _now()
        record = ConversationRecord(
            session_id=session_id,
            state=state,
            last_message=render(EnrollmentStep.INTENT),
            created_at=now,
            updated_at=now,
        )
        self._records[session_id] = record

        logger.info("Created enrollment session %s", session_id)
        await emit(SystemEvent(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            data={
                "step": state.step.value,
                "is_eligible": is_eligible,
                "seeded_age": current_age is not None,
            },
            source_module=_SOURCE,
        ))
        await self.prune()
        return record

    def get(self, session_id: uuid.UUID) -> ConversationRecord:
        """Return the latest record for a conversation.

        Raises:
            SessionNotFoundError: If the conversation does not exist.
        """
        record = self._records.get(session_id)
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    async def handle_message(self, session_id: uuid.UUID, text: str) -> ConversationRecord:
        """Apply one user turn and return the updated record.

        Raises:
            SessionNotFoundError: If the conversation does not exist.
        """
        previous = self.get(session_id)
        response = advance(previous.state, text)
        record = previous.model_copy(update={
            "state": response.next_state,
            "last_message": response.message,
            "is_complete": response.is_complete,
            "turns": previous.turns + 1,
            "updated_at": _now(),
        })
        # Store before emitting so a subscriber problem cannot lose the turn
        self._records[session_id] = record

        await self._emit_turn(session_id, previous.state, response, len(text))
        return record

    async def delete(self, session_id: uuid.UUID) -> None:
        """Forget a conversation.

        Raises:
            SessionNotFoundError: If the conversation does not exist.
        """
        if self._records.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)
        logger.info("Deleted enrollment session %s", session_id)
        await emit(SystemEvent(
            event_type=EventType.SESSION_DELETED,
            session_id=session_id,
            source_module=_SOURCE,
        ))

    async def prune(self) -> list[uuid.UUID]:
        """Forget expired conversations and enforce ``max_sessions``.

        Returns:
            The ids that were dropped, each announced with SESSION_EXPIRED.
        """
        now = _now()
        expired = [
            session_id
            for session_id, record in self._records.items()
            if now - record.updated_at >= (self.completed_ttl if record.is_complete else self.idle_ttl)
        ]

        overflow = len(self._records) - len(expired) - self.max_sessions
        if overflow > 0:
            dropped = set(expired)
            candidates = sorted(
                (record for session_id, record in self._records.items() if session_id not in dropped),
                key=lambda record: (not record.is_complete, record.updated_at),
            )
            expired.extend(record.session_id for record in candidates[:overflow])

        for session_id in expired:
            record = self._records.pop(session_id)
            await emit(SystemEvent(
                event_type=EventType.SESSION_EXPIRED,
                session_id=session_id,
                data={"step": record.state.step.value, "turns": record.turns},
                source_module=_SOURCE,
            ))

        if expired:
            logger.info("Expired %d enrollment sessions (%d kept)", len(expired), len(self._records))
        return expired

    async def _emit_turn(
        self,
        session_id: uuid.UUID,
        before: EnrollmentState,
        response: EnrollmentResponse,
        text_length: int,
    ) -> None:
        after = response.next_state

        await emit(SystemEvent(
            event_type=EventType.MESSAGE_RECEIVED,
            session_id=session_id,
            data={"text_length": text_length, "step": before.step.value},
            source_module=_SOURCE,
        ))

        if after.step != before.step:
            await emit(SystemEvent(
                event_type=EventType.SESSION_STATE_CHANGED,
                session_id=session_id,
                data={"from_step": before.step.value, "to_step": after.step.value},
                source_module=_SOURCE,
            ))
        elif before.step != EnrollmentStep.REVIEW and not before.is_terminal and after == before:
            await emit(SystemEvent(
                event_type=EventType.INPUT_REJECTED,
                session_id=session_id,
                data={"step": before.step.value},
                source_module=_SOURCE,
            ))

        if response.is_complete and not before.is_terminal:
            if after.step == EnrollmentStep.CONFIRMED:
                await emit(SystemEvent(
                    event_type=EventType.SESSION_COMPLETED,
                    session_id=session_id,
                    data={"collected_data": after.collected_data.as_payload()},
                    source_module=_SOURCE,
                ))
            else:
                await emit(SystemEvent(
                    event_type=EventType.SESSION_INELIGIBLE,
                    session_id=session_id,
                    source_module=_SOURCE,
                ))

        await emit(SystemEvent(
            event_type=EventType.MESSAGE_SENT,
            session_id=session_id,
            data={"text_length": len(response.message), "step": after.step.value},
            source_module=_SOURCE,
        ))


# Module-level singleton used by the HTTP layer
session_store = EnrollmentSessionStore()
