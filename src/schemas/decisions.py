"""Pydantic schemas describing the decision widget for a step.

A client renders these next to the prompt; clicking an option sends its
``value`` back as the next utterance.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import DecisionKind, EnrollmentStep
from src.schemas.funds import FundOption


class DecisionOption(BaseModel):
    """One selectable answer and the utterance it sends."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    hint: str | None = None
    recommended: bool = False


class DecisionPrompt(BaseModel):
    """Widget descriptor for the current step."""

    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    step: EnrollmentStep
    title: str
    options: list[DecisionOption] = Field(default_factory=list)

    # CONTRIBUTION slider bounds
    min_value: float | None = None
    max_value: float | None = None

    # MANUAL_FUNDS: one pick per category
    fund_groups: dict[str, list[FundOption]] | None = None

    # MANUAL_ALLOCATION: fund id → current percentage, plus display names
    allocations: dict[str, float] | None = None
    fund_names: dict[str, str] | None = None
