"""Enrollment dialogue state machine: deterministic, keyword-driven, never raises on input."""

from src.enrollment.decisions import decision_for
from src.enrollment.machine import advance, initialize, recommend_plan_choice
from src.schemas.enrollment import CollectedData, EnrollmentResponse, EnrollmentState

__all__ = [
    "advance",
    "initialize",
    "recommend_plan_choice",
    "decision_for",
    "EnrollmentState",
    "EnrollmentResponse",
    "CollectedData",
]
