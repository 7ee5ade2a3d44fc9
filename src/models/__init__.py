"""Domain enums for the enrollment assistant."""

from __future__ import annotations

from src.models.enums import (
    DecisionKind,
    EnrollmentStep,
    InvestmentStrategy,
    PlanChoice,
    RiskLevel,
)

__all__ = [
    "DecisionKind",
    "EnrollmentStep",
    "InvestmentStrategy",
    "PlanChoice",
    "RiskLevel",
]
