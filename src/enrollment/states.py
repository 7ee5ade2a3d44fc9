"""Enrollment step graph.

The machine decides transitions from user input; this map declares which
edges exist so every response can be checked against it. A step may always
stay on itself (reprompt), so self-edges are implicit.
"""

from __future__ import annotations

from src.models.enums import EnrollmentStep

S = EnrollmentStep

# {current_step: {reachable_next_steps}}
TRANSITIONS: dict[EnrollmentStep, frozenset[EnrollmentStep]] = {
    S.INTENT: frozenset({S.RETIREMENT_AGE, S.CURRENT_AGE, S.INELIGIBLE}),
    S.ELIGIBILITY: frozenset({S.RETIREMENT_AGE, S.CURRENT_AGE, S.INELIGIBLE}),
    S.CURRENT_AGE: frozenset({S.RETIREMENT_AGE}),
    S.RETIREMENT_AGE: frozenset({S.LOCATION, S.REVIEW}),
    S.LOCATION: frozenset({S.PLAN_RECOMMENDATION, S.REVIEW}),
    S.PLAN_RECOMMENDATION: frozenset({S.CONTRIBUTION, S.REVIEW}),
    S.CONTRIBUTION: frozenset({S.MONEY_HANDLING}),
    S.MONEY_HANDLING: frozenset({S.MANUAL_RISK, S.REVIEW}),
    S.MANUAL_RISK: frozenset({S.MANUAL_FUNDS}),
    S.MANUAL_FUNDS: frozenset({S.MANUAL_ALLOCATION}),
    S.MANUAL_ALLOCATION: frozenset({S.REVIEW}),
    S.REVIEW: frozenset({
        S.PLAN_RECOMMENDATION,
        S.RETIREMENT_AGE,
        S.LOCATION,
        S.MONEY_HANDLING,
        S.MANUAL_ALLOCATION,
        S.CONFIRMED,
    }),
    S.INELIGIBLE: frozenset(),
    S.CONFIRMED: frozenset(),
}

TERMINAL_STEPS: frozenset[EnrollmentStep] = frozenset(
    step for step, targets in TRANSITIONS.items() if not targets
)

# Steps a targeted edit from REVIEW can jump into and return from,
# in the order REVIEW checks for them
RESUMABLE_STEPS: tuple[EnrollmentStep, ...] = (
    S.PLAN_RECOMMENDATION,
    S.RETIREMENT_AGE,
    S.LOCATION,
)


def is_valid_transition(current: EnrollmentStep, target: EnrollmentStep) -> bool:
    """Check if ``target`` is reachable from ``current`` in one turn."""
    return target == current or target in TRANSITIONS.get(current, frozenset())
