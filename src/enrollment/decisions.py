"""Decision widgets derived from the enrollment state.

Pure mapping from a state to the widget a client can show. The machine never
depends on it: every option simply carries the canonical utterance the
matching handler understands.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from src.config import settings
from src.enrollment.funds import RISK_OPTIONS, fund_name, funds_by_category
from src.enrollment.keywords import ALLOCATION_PREFIX, FUNDS_PREFIX
from src.enrollment.messages import HANDLING_LABELS, PLAN_LABELS, PLAN_TYPES, format_percentage
from src.models.enums import DecisionKind, EnrollmentStep, InvestmentStrategy, PlanChoice
from src.schemas.decisions import DecisionOption, DecisionPrompt
from src.schemas.enrollment import EnrollmentState

S = EnrollmentStep

CONTRIBUTION_PRESETS: tuple[int, ...] = (3, 6, 10, 15)

_PLAN_HINTS: dict[PlanChoice, str] = {
    PlanChoice.PAY_TAX_LATER: "Pre-tax contributions, taxable in retirement.",
    PlanChoice.PAY_TAX_NOW: "After-tax contributions, tax-free in retirement.",
}

_PLAN_UTTERANCES: dict[PlanChoice, str] = {
    PlanChoice.PAY_TAX_LATER: "traditional",
    PlanChoice.PAY_TAX_NOW: "roth",
}

_HANDLING_OPTIONS: tuple[tuple[str, InvestmentStrategy, str], ...] = (
    ("default", InvestmentStrategy.DEFAULT, "Automatic allocation"),
    ("manual", InvestmentStrategy.MANUAL, "Pick funds yourself"),
    ("advisor", InvestmentStrategy.ADVISOR, "Personalized guidance"),
)


def funds_payload(fund_ids: Iterable[str]) -> str:
    """Build the ``funds:`` utterance for a fund selection."""
    return FUNDS_PREFIX + ",".join(fund_ids)


def allocation_payload(allocations: Mapping[str, float]) -> str:
    """Build the ``alloc:`` utterance for a percentage split."""
    pairs = (f"{fund_id}:{format_percentage(float(pct))}" for fund_id, pct in allocations.items())
    return ALLOCATION_PREFIX + ",".join(pairs)


def _plan_choice(state: EnrollmentState) -> DecisionPrompt:
    recommended = state.recommended_plan_choice
    options = [
        DecisionOption(
            value=_PLAN_UTTERANCES[choice],
            label=f"{PLAN_LABELS[choice]} ({PLAN_TYPES[choice]})",
            hint=_PLAN_HINTS[choice],
            recommended=choice == recommended,
        )
        for choice in (PlanChoice.PAY_TAX_LATER, PlanChoice.PAY_TAX_NOW)
    ]
    return DecisionPrompt(kind=DecisionKind.PLAN_CHOICE, step=state.step, title="Choose plan type", options=options)


def _contribution(state: EnrollmentState) -> DecisionPrompt:
    default_pct = settings.enrollment.default_contribution_pct
    options = [
        DecisionOption(value=f"{pct}%", label=f"{pct}%", recommended=pct == default_pct)
        for pct in CONTRIBUTION_PRESETS
    ]
    return DecisionPrompt(
        kind=DecisionKind.CONTRIBUTION,
        step=state.step,
        title="Choose contribution percentage",
        options=options,
        min_value=1,
        max_value=100,
    )


def _money_handling(state: EnrollmentState) -> DecisionPrompt:
    options = [
        DecisionOption(value=value, label=HANDLING_LABELS[strategy], hint=hint)
        for value, strategy, hint in _HANDLING_OPTIONS
    ]
    return DecisionPrompt(
        kind=DecisionKind.MONEY_HANDLING,
        step=state.step,
        title="Choose investment approach",
        options=options,
    )


def _risk_comfort(state: EnrollmentState) -> DecisionPrompt:
    options = [
        DecisionOption(value=level.value, label=label, hint=hint)
        for level, (label, hint) in RISK_OPTIONS.items()
    ]
    return DecisionPrompt(
        kind=DecisionKind.RISK_COMFORT,
        step=state.step,
        title="How much risk are you comfortable with?",
        options=options,
    )


def _fund_selection(state: EnrollmentState) -> DecisionPrompt:
    return DecisionPrompt(
        kind=DecisionKind.FUND_SELECTION,
        step=state.step,
        title="Pick one fund per category.",
        fund_groups=funds_by_category(),
    )


def _allocation(state: EnrollmentState) -> DecisionPrompt:
    fund_ids = state.manual_selected_fund_ids or ()
    current = state.draft_allocations or state.manual_allocations or {}
    allocations = {fund_id: float(current.get(fund_id, 0)) for fund_id in fund_ids}
    return DecisionPrompt(
        kind=DecisionKind.ALLOCATION,
        step=state.step,
        title="Set the percentage for each fund. Total must equal 100%.",
        allocations=allocations,
        fund_names={fund_id: fund_name(fund_id) for fund_id in fund_ids},
    )


def _review(state: EnrollmentState) -> DecisionPrompt:
    edit_label = (
        "Change how money is split"
        if state.investment_strategy == InvestmentStrategy.MANUAL
        else "Change how money is handled"
    )
    options = [
        DecisionOption(value="yes, submit", label="Submit enrollment"),
        DecisionOption(value="change plan", label="Change plan"),
        DecisionOption(value="edit retirement age", label="Edit retirement age"),
        DecisionOption(value="edit location", label="Edit location"),
        DecisionOption(value="edit", label=edit_label),
    ]
    return DecisionPrompt(kind=DecisionKind.REVIEW, step=state.step, title="Review your choices", options=options)


def _start(state: EnrollmentState) -> DecisionPrompt:
    return DecisionPrompt(
        kind=DecisionKind.START,
        step=state.step,
        title="Start your enrollment",
        options=[DecisionOption(value="I want to enroll", label="Enroll")],
    )


_BUILDERS = {
    S.INTENT: _start,
    S.PLAN_RECOMMENDATION: _plan_choice,
    S.CONTRIBUTION: _contribution,
    S.MONEY_HANDLING: _money_handling,
    S.MANUAL_RISK: _risk_comfort,
    S.MANUAL_FUNDS: _fund_selection,
    S.MANUAL_ALLOCATION: _allocation,
    S.REVIEW: _review,
}


def decision_for(state: EnrollmentState) -> DecisionPrompt | None:
    """Return the widget for ``state.step``, or None for free-text steps."""
    builder = _BUILDERS.get(state.step)
    return builder(state) if builder is not None else None
