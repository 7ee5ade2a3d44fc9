"""Enrollment state machine: one handler per step, no exception path.

``advance(state, utterance)`` is the only per-turn entry point. It is a pure
function of its inputs: no I/O, no shared mutable state. Bad input never
raises; the handler returns the unchanged state with a corrective prompt.

REVIEW is special-cased: targeted edit requests ("edit retirement age",
"change plan", ...) are intercepted before the generic REVIEW handler runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.config import settings
from src.enrollment import keywords as kw
from src.enrollment.funds import fund_name
from src.enrollment.messages import (
    HANDLING_LABELS,
    PLAN_LABELS,
    PLAN_TYPES,
    format_percentage,
    render,
)
from src.enrollment.states import RESUMABLE_STEPS, is_valid_transition
from src.models.enums import EnrollmentStep, InvestmentStrategy, PlanChoice, RiskLevel
from src.schemas.enrollment import CollectedData, EnrollmentResponse, EnrollmentState

logger = logging.getLogger(__name__)

S = EnrollmentStep

Handler = Callable[[EnrollmentState, str], EnrollmentResponse]


# ── Derived values ───────────────────────────────────────────────────


def recommend_plan_choice(current_age: int, years_to_retirement: int) -> PlanChoice:
    """Pay tax now when young or far from retirement, otherwise pay tax later."""
    if current_age <= 35 or years_to_retirement >= 25:
        return PlanChoice.PAY_TAX_NOW
    return PlanChoice.PAY_TAX_LATER


def plan_type_for(choice: PlanChoice) -> str:
    return PLAN_TYPES[choice]


def _whole(value: float) -> int | None:
    return int(value) if value.is_integer() else None


def _effective_age(state: EnrollmentState) -> int:
    if state.current_age is not None:
        return state.current_age
    return settings.enrollment.default_current_age


def _leaves_room_to_retire(age: int) -> bool:
    """A current age is usable only if some retirement age can still follow it."""
    limits = settings.enrollment
    return limits.min_current_age <= age < limits.max_age


# ── Response builders ────────────────────────────────────────────────


def _stay(state: EnrollmentState, message: str) -> EnrollmentResponse:
    return EnrollmentResponse(next_state=state, message=message, is_complete=state.is_terminal)


def _move(
    state: EnrollmentState,
    step: EnrollmentStep,
    message: str,
    collected: CollectedData | None = None,
    **updates: object,
) -> EnrollmentResponse:
    update: dict[str, object] = {"step": step, **updates}
    if collected is not None:
        update["collected_data"] = collected
    next_state = state.model_copy(update=update)
    return EnrollmentResponse(next_state=next_state, message=message, is_complete=next_state.is_terminal)


def _resume_review(state: EnrollmentState, collected: CollectedData, **updates: object) -> EnrollmentResponse:
    """Finish a targeted edit and hand back to REVIEW."""
    return _move(state, S.REVIEW, render(S.REVIEW, "updated"), collected, resume_review=False, **updates)


# ── Entry and eligibility ────────────────────────────────────────────


def _eligibility_branch(state: EnrollmentState) -> EnrollmentResponse:
    eligible = True if state.is_eligible is None else state.is_eligible
    if not eligible:
        return _move(state, S.INELIGIBLE, render(S.INELIGIBLE, "rejected"), is_eligible=False)

    current_age = _effective_age(state)
    if not _leaves_room_to_retire(current_age):
        # A seeded age no retirement age can follow: ask for it instead
        logger.info("Seeded current age %s out of range, asking for it", current_age)
        return _move(state, S.CURRENT_AGE, render(S.CURRENT_AGE, "start"), is_eligible=True, current_age=None)

    return _move(
        state,
        S.RETIREMENT_AGE,
        render(S.RETIREMENT_AGE, "start"),
        state.collected_data.merged(current_age=current_age),
        is_eligible=True,
        current_age=current_age,
    )


def handle_intent(state: EnrollmentState, text: str) -> EnrollmentResponse:
    if not kw.matches_any(text, kw.INTENT_KEYWORDS):
        return _stay(state, render(S.INTENT))
    return _eligibility_branch(state)


def handle_eligibility(state: EnrollmentState, text: str) -> EnrollmentResponse:
    """Run the eligibility check for callers that already established intent."""
    if kw.is_noise(text):
        return _stay(state, render(S.ELIGIBILITY))
    return _eligibility_branch(state)


# ── Demographics ─────────────────────────────────────────────────────


def handle_current_age(state: EnrollmentState, text: str) -> EnrollmentResponse:
    limits = settings.enrollment
    value = kw.extract_number(text)
    if value is None:
        return _stay(state, render(S.CURRENT_AGE, "invalid"))
    if value < limits.min_current_age:
        return _stay(state, render(S.CURRENT_AGE, "too_low"))
    if value >= limits.max_age:
        return _stay(state, render(S.CURRENT_AGE, "too_high"))

    age = _whole(value)
    if age is None:
        return _stay(state, render(S.CURRENT_AGE, "invalid"))

    updates: dict[str, object] = {"current_age": age}
    collected = state.collected_data.merged(current_age=age)
    if state.retirement_age is not None:
        # Keep the horizon consistent with a retirement age captured earlier
        if state.retirement_age > age:
            updates["years_to_retirement"] = state.retirement_age - age
            collected = collected.merged(years_to_retirement=state.retirement_age - age)
        else:
            updates["retirement_age"] = None
            updates["years_to_retirement"] = None
    return _move(state, S.RETIREMENT_AGE, render(S.RETIREMENT_AGE, "prompt"), collected, **updates)


def handle_retirement_age(state: EnrollmentState, text: str) -> EnrollmentResponse:
    current_age = _effective_age(state)
    value = kw.extract_number(text)
    if value is None:
        return _stay(state, render(S.RETIREMENT_AGE, "invalid"))
    if value <= current_age:
        return _stay(state, render(S.RETIREMENT_AGE, "too_low"))
    if value > settings.enrollment.max_age:
        return _stay(state, render(S.RETIREMENT_AGE, "too_high"))

    retirement_age = _whole(value)
    if retirement_age is None:
        return _stay(state, render(S.RETIREMENT_AGE, "invalid"))

    years = retirement_age - current_age
    collected = state.collected_data.merged(
        current_age=current_age,
        retirement_age=retirement_age,
        years_to_retirement=years,
    )
    updates: dict[str, object] = {
        "current_age": current_age,
        "retirement_age": retirement_age,
        "years_to_retirement": years,
    }

    if state.resume_review:
        recommended = recommend_plan_choice(current_age, years)
        collected = collected.merged(recommended_plan_choice=PLAN_LABELS[recommended])
        return _resume_review(state, collected, recommended_plan_choice=recommended, **updates)

    return _move(state, S.LOCATION, render(S.LOCATION), collected, **updates)


def handle_location(state: EnrollmentState, text: str) -> EnrollmentResponse:
    if len(text) < 2 or kw.is_noise(text):
        return _stay(state, render(S.LOCATION))

    recommended = recommend_plan_choice(state.current_age or 0, state.years_to_retirement or 0)
    collected = state.collected_data.merged(
        work_country=text,
        recommended_plan_choice=PLAN_LABELS[recommended],
    )
    updates: dict[str, object] = {"work_country": text, "recommended_plan_choice": recommended}

    if state.resume_review:
        return _resume_review(state, collected, **updates)

    message = render(S.PLAN_RECOMMENDATION, "recommend", suggested=PLAN_LABELS[recommended])
    return _move(state, S.PLAN_RECOMMENDATION, message, collected, **updates)


# ── Plan and contribution ────────────────────────────────────────────


def handle_plan_recommendation(state: EnrollmentState, text: str) -> EnrollmentResponse:
    wants_later = kw.matches_any(text, kw.PLAN_LATER_KEYWORDS)
    wants_now = kw.matches_any(text, kw.PLAN_NOW_KEYWORDS)

    if not wants_later and not wants_now:
        recommended = state.recommended_plan_choice or PlanChoice.PAY_TAX_LATER
        return _stay(state, render(S.PLAN_RECOMMENDATION, "reprompt", suggested=PLAN_LABELS[recommended]))

    choice = PlanChoice.PAY_TAX_NOW if wants_now else PlanChoice.PAY_TAX_LATER
    plan_type = plan_type_for(choice)
    collected = state.collected_data.merged(selected_plan_choice=PLAN_LABELS[choice], plan_type=plan_type)
    updates: dict[str, object] = {"selected_plan_choice": choice, "plan_type": plan_type}

    if state.resume_review:
        return _resume_review(state, collected, **updates)

    return _move(state, S.CONTRIBUTION, render(S.CONTRIBUTION), collected, **updates)


def handle_contribution(state: EnrollmentState, text: str) -> EnrollmentResponse:
    if kw.matches_any(text, kw.UNSURE_KEYWORDS):
        pct: float | None = settings.enrollment.default_contribution_pct
    else:
        pct = kw.extract_percentage(text)
        if pct is None:
            pct = kw.extract_number(text)

    if pct is None or pct < 1 or pct > 100:
        return _stay(state, render(S.CONTRIBUTION))

    return _move(
        state,
        S.MONEY_HANDLING,
        render(S.MONEY_HANDLING, "saved"),
        state.collected_data.merged(contribution_percentage=pct),
        contribution_percentage=pct,
    )


# ── Investments ──────────────────────────────────────────────────────


def handle_money_handling(state: EnrollmentState, text: str) -> EnrollmentResponse:
    if kw.matches_any(text, kw.MONEY_MANUAL_KEYWORDS):
        strategy, step, message = InvestmentStrategy.MANUAL, S.MANUAL_RISK, render(S.MANUAL_RISK, "noted")
    elif kw.matches_any(text, kw.MONEY_ADVISOR_KEYWORDS):
        strategy, step, message = InvestmentStrategy.ADVISOR, S.REVIEW, render(S.REVIEW, "noted")
    elif kw.matches_any(text, kw.MONEY_SYSTEM_KEYWORDS):
        strategy, step, message = InvestmentStrategy.DEFAULT, S.REVIEW, render(S.REVIEW, "noted")
    else:
        return _stay(state, render(S.MONEY_HANDLING))

    return _move(
        state,
        step,
        message,
        state.collected_data.merged(investment_strategy=HANDLING_LABELS[strategy]),
        investment_strategy=strategy,
        resume_review=False,
    )


def handle_manual_risk(state: EnrollmentState, text: str) -> EnrollmentResponse:
    level = next((level for level in RiskLevel if level.value in text), None)
    if level is None:
        return _stay(state, render(S.MANUAL_RISK))

    return _move(
        state,
        S.MANUAL_FUNDS,
        render(S.MANUAL_FUNDS),
        state.collected_data.merged(manual_risk_level=level.value.capitalize()),
        manual_risk_level=level,
    )


def handle_manual_funds(state: EnrollmentState, text: str) -> EnrollmentResponse:
    fund_ids = kw.parse_fund_selection(text)
    if fund_ids is None:
        return _stay(state, render(S.MANUAL_FUNDS, "reprompt"))

    return _move(
        state,
        S.MANUAL_ALLOCATION,
        render(S.MANUAL_ALLOCATION),
        state.collected_data.merged(manual_fund_names=tuple(fund_name(fund_id) for fund_id in fund_ids)),
        manual_selected_fund_ids=fund_ids,
        manual_allocations=kw.even_split(fund_ids),
        draft_allocations=None,
    )


def handle_manual_allocation(state: EnrollmentState, text: str) -> EnrollmentResponse:
    parsed = kw.parse_allocation(text)
    selected = state.manual_selected_fund_ids
    if parsed is None or not selected or not all(fund_id in parsed for fund_id in selected):
        return _stay(state, render(S.MANUAL_ALLOCATION))

    # Only selected funds count; stray ids in the payload are ignored
    allocations = {fund_id: parsed[fund_id] for fund_id in selected}
    total = sum(allocations.values())

    if abs(total - 100) >= settings.enrollment.allocation_tolerance:
        logger.debug("Allocation sums to %s, expected 100", total)
        return _move(
            state,
            S.MANUAL_ALLOCATION,
            render(S.MANUAL_ALLOCATION, "mismatch"),
            draft_allocations=allocations,
        )

    return _move(
        state,
        S.REVIEW,
        render(S.REVIEW, "split_ok"),
        state.collected_data.merged(manual_allocations=dict(allocations)),
        manual_allocations=allocations,
        draft_allocations=None,
    )


# ── Review ───────────────────────────────────────────────────────────

# (phrases, prompt variant) per step in RESUMABLE_STEPS
REVIEW_EDIT_TARGETS: dict[EnrollmentStep, tuple[tuple[str, ...], str]] = {
    S.PLAN_RECOMMENDATION: (kw.REVIEW_EDIT_PLAN_KEYWORDS, "edit"),
    S.RETIREMENT_AGE: (kw.REVIEW_EDIT_RETIREMENT_KEYWORDS, "edit"),
    S.LOCATION: (kw.REVIEW_EDIT_LOCATION_KEYWORDS, "prompt"),
}


def intercept_review_edit(state: EnrollmentState, text: str) -> EnrollmentResponse | None:
    """Jump from REVIEW to the step a targeted edit names, keeping all answers.

    Returns None when the input is not a targeted edit.
    """
    for target in RESUMABLE_STEPS:
        phrases, variant = REVIEW_EDIT_TARGETS[target]
        if kw.matches_any(text, phrases):
            return _move(state, target, render(target, variant), resume_review=True)
    return None


def review_summary(state: EnrollmentState) -> str:
    """Plain-text recap of the plan, saving rate, and investment handling."""
    plan = PLAN_LABELS[state.selected_plan_choice or PlanChoice.PAY_TAX_LATER]
    saving = state.contribution_percentage
    if saving is None:
        saving = settings.enrollment.default_contribution_pct
    handling = HANDLING_LABELS[state.investment_strategy or InvestmentStrategy.DEFAULT]
    return render(S.REVIEW, "summary", plan=plan, saving=format_percentage(saving), handling=handling)


def handle_review(state: EnrollmentState, text: str) -> EnrollmentResponse:
    if kw.matches_any(text, kw.REVIEW_EDIT_KEYWORDS):
        if state.investment_strategy == InvestmentStrategy.MANUAL:
            return _move(state, S.MANUAL_ALLOCATION, render(S.MANUAL_ALLOCATION, "edit"))
        return _move(state, S.MONEY_HANDLING, render(S.MONEY_HANDLING, "edit"))

    if kw.matches_any(text, kw.REVIEW_CONFIRM_KEYWORDS):
        return _move(state, S.CONFIRMED, render(S.CONFIRMED, "submitted"))

    if kw.matches_any(text, kw.REVIEW_DECLINE_KEYWORDS):
        return _stay(state, render(S.REVIEW, "decline"))

    return _stay(state, review_summary(state))


# ── Terminal steps ───────────────────────────────────────────────────


def handle_ineligible(state: EnrollmentState, text: str) -> EnrollmentResponse:
    return EnrollmentResponse(next_state=state, message=render(S.INELIGIBLE, "terminal"), is_complete=True)


def handle_confirmed(state: EnrollmentState, text: str) -> EnrollmentResponse:
    return EnrollmentResponse(next_state=state, message=render(S.CONFIRMED, "terminal"), is_complete=True)


HANDLERS: dict[EnrollmentStep, Handler] = {
    S.INTENT: handle_intent,
    S.ELIGIBILITY: handle_eligibility,
    S.CURRENT_AGE: handle_current_age,
    S.RETIREMENT_AGE: handle_retirement_age,
    S.LOCATION: handle_location,
    S.PLAN_RECOMMENDATION: handle_plan_recommendation,
    S.CONTRIBUTION: handle_contribution,
    S.MONEY_HANDLING: handle_money_handling,
    S.MANUAL_RISK: handle_manual_risk,
    S.MANUAL_FUNDS: handle_manual_funds,
    S.MANUAL_ALLOCATION: handle_manual_allocation,
    S.REVIEW: handle_review,
    S.INELIGIBLE: handle_ineligible,
    S.CONFIRMED: handle_confirmed,
}


# ── Public API ───────────────────────────────────────────────────────


def initialize(is_eligible: bool | None = None, current_age: int | None = None) -> EnrollmentState:
    """Create the INTENT-step seed, optionally with account-known facts."""
    collected = CollectedData(current_age=current_age) if current_age is not None else CollectedData()
    return EnrollmentState(
        step=S.INTENT,
        is_eligible=is_eligible,
        current_age=current_age,
        collected_data=collected,
    )


def advance(state: EnrollmentState, utterance: str) -> EnrollmentResponse:
    """Apply one user turn to ``state``.

    Args:
        state: Snapshot returned by the previous turn (or ``initialize``).
        utterance: Raw user text or a widget payload (``funds:...``, ``alloc:...``).

    Returns:
        The next state, the message to show, and whether the flow is over.
    """
    text = kw.normalize(utterance)

    response: EnrollmentResponse | None = None
    if state.step == S.REVIEW:
        response = intercept_review_edit(state, text)
    if response is None:
        response = HANDLERS[state.step](state, text)

    next_step = response.next_state.step
    if not is_valid_transition(state.step, next_step):
        logger.warning("Unexpected enrollment transition: %s -> %s", state.step.value, next_step.value)
    if state.resume_review and next_step not in (state.step, S.REVIEW):
        logger.warning("Targeted edit at %s did not return to REVIEW", state.step.value)

    if next_step != state.step:
        logger.info("Enrollment step: %s -> %s", state.step.value, next_step.value)
    elif not state.is_terminal:
        logger.debug("Enrollment step %s reprompted", state.step.value)

    return response
