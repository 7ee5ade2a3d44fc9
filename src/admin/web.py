"""Admin routes: read-only view of the per-conversation audit trail."""
# ruff: noqa: B008  (Depends() in function defaults is standard FastAPI)

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from src.admin.audit import AuditTrail, audit_trail
from src.enrollment.store import EnrollmentSessionStore, session_store
from src.schemas.api import AuditResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_audit_trail() -> AuditTrail:
    return audit_trail


def get_store() -> EnrollmentSessionStore:
    return session_store


@router.get("/sessions/{session_id}/audit", response_model=AuditResponse)
async def session_audit(
    session_id: uuid.UUID,
    trail: AuditTrail = Depends(get_audit_trail),
    store: EnrollmentSessionStore = Depends(get_store),
) -> AuditResponse:
    """Events recorded for a conversation, including expired ones still in the trail."""
    events = trail.entries(session_id)
    if not events and session_id not in store:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No audit trail for this session")
    logger.debug("Serving %d audit events for session %s", len(events), session_id)
    return AuditResponse(session_id=session_id, events=events)
