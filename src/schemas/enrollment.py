"""Pydantic schemas for the enrollment conversation state.

Pure data classes. The state is frozen: every transition builds a new value
with ``model_copy(update=...)`` so "stay in place" is just returning the input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import EnrollmentStep, InvestmentStrategy, PlanChoice, RiskLevel


class CollectedData(BaseModel):
    """Display-oriented mirror of the answers, submitted at the end of the flow.

    Values are human-readable labels ("Pay tax now", "Roth 401(k)") rather
    than enum codes. Fields are only ever added or overwritten, never cleared.
    """

    model_config = ConfigDict(frozen=True)

    current_age: int | None = None
    retirement_age: int | None = None
    years_to_retirement: int | None = None
    work_country: str | None = None
    recommended_plan_choice: str | None = None
    selected_plan_choice: str | None = None
    plan_type: str | None = None
    contribution_percentage: float | None = None
    investment_strategy: str | None = None
    manual_risk_level: str | None = None
    manual_fund_names: tuple[str, ...] | None = None
    manual_allocations: dict[str, float] | None = None

    def merged(self, **fields: Any) -> CollectedData:
        """Return a copy with ``fields`` recorded; ``None`` values are ignored."""
        updates = {key: value for key, value in fields.items() if value is not None}
        if not updates:
            return self
        return self.model_copy(update=updates)

    def as_payload(self) -> dict[str, Any]:
        """Only the fields recorded so far, ready for submission."""
        return self.model_dump(exclude_none=True, mode="json")


class EnrollmentState(BaseModel):
    """Snapshot of one enrollment conversation between two turns."""

    model_config = ConfigDict(frozen=True)

    step: EnrollmentStep = EnrollmentStep.INTENT
    is_eligible: bool | None = None

    # Demographics
    current_age: int | None = None
    retirement_age: int | None = None
    years_to_retirement: int | None = None
    work_country: str | None = None

    # Plan
    recommended_plan_choice: PlanChoice | None = None
    selected_plan_choice: PlanChoice | None = None
    plan_type: str | None = None
    contribution_percentage: float | None = None

    # Investments
    investment_strategy: InvestmentStrategy | None = None
    manual_risk_level: RiskLevel | None = None
    manual_selected_fund_ids: tuple[str, ...] | None = None
    manual_allocations: dict[str, float] | None = None
    # Last complete split that did not add up to 100, kept for re-rendering
    draft_allocations: dict[str, float] | None = None

    # Set by a targeted edit from REVIEW: the edited step hands back to REVIEW
    resume_review: bool = False

    collected_data: CollectedData = Field(default_factory=CollectedData)

    @property
    def is_terminal(self) -> bool:
        """Check if the conversation has reached an absorbing step."""
        return self.step in (EnrollmentStep.CONFIRMED, EnrollmentStep.INELIGIBLE)


class EnrollmentResponse(BaseModel):
    """Result of a single turn: the next state and what to say."""

    model_config = ConfigDict(frozen=True)

    next_state: EnrollmentState
    message: str
    is_complete: bool = False
