"""Request and response bodies for the enrollment HTTP API."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, Field

from src.config import settings
from src.schemas.decisions import DecisionPrompt
from src.schemas.enrollment import EnrollmentState


class StartSessionRequest(BaseModel):
    """Facts the host product already knows about the participant."""

    is_eligible: bool | None = None
    # Must leave room for a retirement age at or below max_age
    current_age: int | None = Field(
        default=None,
        ge=settings.enrollment.min_current_age,
        le=settings.enrollment.max_age - 1,
    )


class MessageRequest(BaseModel):
    """One user turn: free text or a widget payload."""

    text: str = Field(min_length=1, max_length=2000)


class SessionResponse(BaseModel):
    """State of a conversation after its latest turn."""

    session_id: uuid.UUID
    state: EnrollmentState
    message: str
    is_complete: bool
    decision: DecisionPrompt | None = None


class AuditResponse(BaseModel):
    """Audit trail entries for a conversation, oldest first."""

    session_id: uuid.UUID
    events: list[dict[str, Any]]
