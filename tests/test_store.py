"""Tests for the in-memory enrollment conversation store.

Covers: session lifecycle, turn application, event emission per turn,
unknown session handling, serialized concurrent turns, and expiry of
completed, idle and overflowing conversations.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from src.enrollment.store import EnrollmentSessionStore, SessionNotFoundError
from src.models.enums import EnrollmentStep
from src.schemas.events import EventType

S = EnrollmentStep


@pytest.fixture
def store() -> EnrollmentSessionStore:
    return EnrollmentSessionStore()


@pytest.fixture
def mock_emit():
    with patch("src.enrollment.store.emit", new_callable=AsyncMock) as mock:
        yield mock


def _event_types(mock_emit: AsyncMock) -> list[EventType]:
    return [call.args[0].event_type for call in mock_emit.await_args_list]


class _Clock:
    """Stands in for the store clock; tests move it forward by hand."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def clock():
    fake = _Clock()
    with patch("src.enrollment.store._now", fake):
        yield fake


# ── Lifecycle ────────────────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start(self, store, mock_emit):
        record = await store.start(current_age=41)

        assert record.state.step == S.INTENT
        assert record.state.current_age == 41
        assert record.turns == 0
        assert "I want to enroll" in record.last_message
        assert record.session_id in store
        assert len(store) == 1

        event = mock_emit.await_args.args[0]
        assert event.event_type == EventType.SESSION_STARTED
        assert event.session_id == record.session_id
        assert event.data["seeded_age"] is True

    @pytest.mark.asyncio
    async def test_get(self, store, mock_emit):
        record = await store.start()
        assert store.get(record.session_id) == record

    def test_get_unknown(self, store):
        session_id = uuid.uuid4()
        with pytest.raises(SessionNotFoundError) as exc_info:
            store.get(session_id)
        assert exc_info.value.session_id == session_id

    def test_not_found_is_a_key_error(self):
        assert issubclass(SessionNotFoundError, KeyError)

    @pytest.mark.asyncio
    async def test_delete(self, store, mock_emit):
        record = await store.start()
        await store.delete(record.session_id)

        assert record.session_id not in store
        assert _event_types(mock_emit)[-1] == EventType.SESSION_DELETED

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store, mock_emit):
        with pytest.raises(SessionNotFoundError):
            await store.delete(uuid.uuid4())
        mock_emit.assert_not_awaited()


# ── Turns ────────────────────────────────────────────────────────────


class TestHandleMessage:
    @pytest.mark.asyncio
    async def test_advancing_turn(self, store, mock_emit):
        record = await store.start()
        mock_emit.reset_mock()

        updated = await store.handle_message(record.session_id, "I want to enroll")

        assert updated.state.step == S.RETIREMENT_AGE
        assert updated.turns == 1
        assert updated.updated_at >= record.updated_at
        assert store.get(record.session_id) == updated
        assert _event_types(mock_emit) == [
            EventType.MESSAGE_RECEIVED,
            EventType.SESSION_STATE_CHANGED,
            EventType.MESSAGE_SENT,
        ]
        changed = mock_emit.await_args_list[1].args[0]
        assert changed.data == {"from_step": "INTENT", "to_step": "RETIREMENT_AGE"}

    @pytest.mark.asyncio
    async def test_rejected_input(self, store, mock_emit):
        record = await store.start()
        mock_emit.reset_mock()

        updated = await store.handle_message(record.session_id, "???")

        assert updated.state == record.state
        assert updated.turns == 1
        assert _event_types(mock_emit) == [
            EventType.MESSAGE_RECEIVED,
            EventType.INPUT_REJECTED,
            EventType.MESSAGE_SENT,
        ]

    @pytest.mark.asyncio
    async def test_unknown_session(self, store, mock_emit):
        with pytest.raises(SessionNotFoundError):
            await store.handle_message(uuid.uuid4(), "hello")
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_completion(self, store, mock_emit):
        record = await store.start()
        for text in ("I want to enroll", "67", "USA", "pay tax now", "8%", "let the system handle it"):
            await store.handle_message(record.session_id, text)
        mock_emit.reset_mock()

        final = await store.handle_message(record.session_id, "yes")

        assert final.state.step == S.CONFIRMED
        assert final.is_complete is True
        assert final.turns == 7
        assert EventType.SESSION_COMPLETED in _event_types(mock_emit)
        completed = next(
            call.args[0] for call in mock_emit.await_args_list
            if call.args[0].event_type == EventType.SESSION_COMPLETED
        )
        assert completed.data["collected_data"]["plan_type"] == "Roth 401(k)"

    @pytest.mark.asyncio
    async def test_turn_after_completion(self, store, mock_emit):
        record = await store.start(is_eligible=False)
        first = await store.handle_message(record.session_id, "enroll")
        assert first.state.step == S.INELIGIBLE
        assert EventType.SESSION_INELIGIBLE in _event_types(mock_emit)
        mock_emit.reset_mock()

        second = await store.handle_message(record.session_id, "enroll again")

        assert second.state == first.state
        assert second.is_complete is True
        assert _event_types(mock_emit) == [EventType.MESSAGE_RECEIVED, EventType.MESSAGE_SENT]

    @pytest.mark.asyncio
    async def test_review_summary_is_not_a_rejection(self, store, mock_emit):
        record = await store.start()
        for text in ("enroll", "67", "USA", "roth", "8%", "automatic"):
            await store.handle_message(record.session_id, text)
        mock_emit.reset_mock()

        await store.handle_message(record.session_id, "what did I pick?")

        assert EventType.INPUT_REJECTED not in _event_types(mock_emit)

    @pytest.mark.asyncio
    async def test_concurrent_turns_are_serialized(self, store, mock_emit):
        record = await store.start()

        await asyncio.gather(
            store.handle_message(record.session_id, "I want to enroll"),
            store.handle_message(record.session_id, "67"),
        )

        final = store.get(record.session_id)
        assert final.turns == 2
        assert final.state.step == S.LOCATION
        assert final.state.retirement_age == 67

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, store, mock_emit):
        first = await store.start()
        second = await store.start()

        await store.handle_message(first.session_id, "enroll")

        assert store.get(first.session_id).state.step == S.RETIREMENT_AGE
        assert store.get(second.session_id).state.step == S.INTENT


# ── Expiry ───────────────────────────────────────────────────────────


class TestExpiry:
    @pytest.mark.asyncio
    async def test_nothing_to_prune(self, store, mock_emit, clock):
        await store.start()
        mock_emit.reset_mock()

        assert await store.prune() == []
        assert len(store) == 1
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_completed_conversation_expires_first(self, mock_emit, clock):
        store = EnrollmentSessionStore(completed_ttl=timedelta(minutes=15), idle_ttl=timedelta(hours=1))
        done = await store.start(is_eligible=False)
        await store.handle_message(done.session_id, "enroll")
        active = await store.start()
        mock_emit.reset_mock()

        clock.advance(minutes=16)
        dropped = await store.prune()

        assert dropped == [done.session_id]
        assert done.session_id not in store
        assert active.session_id in store

        event = mock_emit.await_args.args[0]
        assert event.event_type == EventType.SESSION_EXPIRED
        assert event.session_id == done.session_id
        assert event.data == {"step": "INELIGIBLE", "turns": 1}

    @pytest.mark.asyncio
    async def test_idle_conversation_expires(self, mock_emit, clock):
        store = EnrollmentSessionStore(idle_ttl=timedelta(hours=1))
        record = await store.start()
        await store.handle_message(record.session_id, "enroll")

        clock.advance(minutes=59)
        assert await store.prune() == []

        clock.advance(minutes=1)
        assert await store.prune() == [record.session_id]
        with pytest.raises(SessionNotFoundError):
            await store.handle_message(record.session_id, "67")

    @pytest.mark.asyncio
    async def test_turn_keeps_conversation_alive(self, mock_emit, clock):
        store = EnrollmentSessionStore(idle_ttl=timedelta(hours=1))
        record = await store.start()

        clock.advance(minutes=45)
        await store.handle_message(record.session_id, "enroll")
        clock.advance(minutes=45)

        assert await store.prune() == []
        assert store.get(record.session_id).state.step == S.RETIREMENT_AGE

    @pytest.mark.asyncio
    async def test_limit_drops_completed_before_active(self, mock_emit, clock):
        store = EnrollmentSessionStore(max_sessions=2)
        done = await store.start(is_eligible=False)
        clock.advance(seconds=1)
        await store.handle_message(done.session_id, "enroll")
        clock.advance(seconds=1)
        older = await store.start()
        clock.advance(seconds=1)

        newest = await store.start()

        assert len(store) == 2
        assert done.session_id not in store
        assert older.session_id in store
        assert newest.session_id in store
        assert EventType.SESSION_EXPIRED in _event_types(mock_emit)

    @pytest.mark.asyncio
    async def test_limit_drops_least_recently_active(self, mock_emit, clock):
        store = EnrollmentSessionStore(max_sessions=2)
        first = await store.start()
        clock.advance(seconds=1)
        second = await store.start()
        clock.advance(seconds=1)
        await store.handle_message(first.session_id, "enroll")
        clock.advance(seconds=1)

        third = await store.start()

        assert second.session_id not in store
        assert first.session_id in store
        assert third.session_id in store
