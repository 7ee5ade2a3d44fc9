"""Enrollment conversation routes.

Thin HTTP wrapper over the in-memory conversation store. The store holds the
state between turns; clients only carry the session id.
"""
# ruff: noqa: B008  (Depends() in function defaults is standard FastAPI)

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.enrollment.decisions import decision_for
from src.enrollment.store import (
    ConversationRecord,
    EnrollmentSessionStore,
    SessionNotFoundError,
    session_store,
)
from src.schemas.api import MessageRequest, SessionResponse, StartSessionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollment", tags=["enrollment"])


def get_store() -> EnrollmentSessionStore:
    return session_store


def _to_response(record: ConversationRecord) -> SessionResponse:
    return SessionResponse(
        session_id=record.session_id,
        state=record.state,
        message=record.last_message,
        is_complete=record.is_complete,
        decision=decision_for(record.state),
    )


def _not_found(exc: SessionNotFoundError) -> HTTPException:
    logger.info("Enrollment session not found: %s", exc.session_id)
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment session not found")


@router.post("/sessions", status_code=status.HTTP_201_CREATED, response_model=SessionResponse)
async def start_session(
    body: StartSessionRequest | None = None,
    store: EnrollmentSessionStore = Depends(get_store),
) -> SessionResponse:
    """Start a new enrollment conversation."""
    body = body or StartSessionRequest()
    record = await store.start(is_eligible=body.is_eligible, current_age=body.current_age)
    return _to_response(record)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: uuid.UUID,
    store: EnrollmentSessionStore = Depends(get_store),
) -> SessionResponse:
    """Return the latest state and message of a conversation."""
    try:
        record = store.get(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    return _to_response(record)


@router.post("/sessions/{session_id}/messages", response_model=SessionResponse)
async def post_message(
    session_id: uuid.UUID,
    body: MessageRequest,
    store: EnrollmentSessionStore = Depends(get_store),
) -> SessionResponse:
    """Apply one user turn to a conversation."""
    try:
        record = await store.handle_message(session_id, body.text)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    return _to_response(record)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: uuid.UUID,
    store: EnrollmentSessionStore = Depends(get_store),
) -> Response:
    """Discard a conversation."""
    try:
        await store.delete(session_id)
    except SessionNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
