"""Prompt catalogue for the enrollment conversation.

Every message is keyed by (step, variant) so a deployment can swap the
literals for localized ones without touching the handlers. Interpolation is
plain ``str.format``.
"""

from __future__ import annotations

from typing import Any

from src.models.enums import EnrollmentStep, InvestmentStrategy, PlanChoice

S = EnrollmentStep

PLAN_LABELS: dict[PlanChoice, str] = {
    PlanChoice.PAY_TAX_NOW: "Pay tax now",
    PlanChoice.PAY_TAX_LATER: "Pay tax later",
}

PLAN_TYPES: dict[PlanChoice, str] = {
    PlanChoice.PAY_TAX_NOW: "Roth 401(k)",
    PlanChoice.PAY_TAX_LATER: "401(k)",
}

HANDLING_LABELS: dict[InvestmentStrategy, str] = {
    InvestmentStrategy.DEFAULT: "Let the system handle it",
    InvestmentStrategy.MANUAL: "You choose yourself",
    InvestmentStrategy.ADVISOR: "Talk to an advisor later",
}

_RECOMMENDATION_INTRO = (
    "Based on your age, expected retirement timeline, and location, here are the plans available to you. "
    "I suggest: {suggested}. "
    "You can choose the other one if you want. "
)

_MONEY_HANDLING_QUESTION = (
    "How do you want your money handled? "
    "Say: Let the system handle it. "
    "Or: I want to choose myself. "
    "Or: Talk to an advisor later."
)

_HANDLING_NOTED = "Okay. I've noted how you want your investments handled. You can adjust this if needed. "

_CONTRIBUTION_QUESTION = (
    "How much of your salary do you want to save each month? "
    "Many people start with 6%. You can change this later."
)

MESSAGES: dict[tuple[EnrollmentStep, str], str] = {
    # Entry
    (S.INTENT, "prompt"): 'To get started, say or select: "I want to enroll."',
    (S.ELIGIBILITY, "prompt"): "I'll check whether you can enroll in this plan. Say continue when you're ready.",
    (S.INELIGIBLE, "rejected"): "I checked your account. You cannot enroll in this plan right now.",
    (S.INELIGIBLE, "terminal"): (
        "You cannot enroll in this plan right now. "
        "If you think this is a mistake, contact your HR team."
    ),
    # Ages
    (S.CURRENT_AGE, "prompt"): "How old are you today?",
    (S.CURRENT_AGE, "start"): "Let's start your enrollment. First, how old are you today?",
    (S.CURRENT_AGE, "too_low"): "That seems a bit low for retirement enrollment. Please enter your current age.",
    (S.CURRENT_AGE, "too_high"): "That age looks higher than expected. Please enter your current age.",
    (S.CURRENT_AGE, "invalid"): "I didn't catch a valid age. Please enter your current age in years.",
    (S.RETIREMENT_AGE, "start"): (
        "Let's start your enrollment. I'll use your account information to guide you "
        "through the available plan options. At what age do you plan to retire?"
    ),
    (S.RETIREMENT_AGE, "prompt"): "At what age do you want to stop working?",
    (S.RETIREMENT_AGE, "edit"): "At what age do you plan to retire?",
    (S.RETIREMENT_AGE, "too_low"): (
        "That retirement age should be higher than your current age. "
        "Please enter the age you plan to retire."
    ),
    (S.RETIREMENT_AGE, "too_high"): "That age looks higher than expected. Please enter the age you plan to retire.",
    (S.RETIREMENT_AGE, "invalid"): "I didn't catch a valid age. Please enter the age you plan to retire in years.",
    # Location and plan
    (S.LOCATION, "prompt"): "Which country do you expect to retire in?",
    (S.PLAN_RECOMMENDATION, "recommend"): (
        _RECOMMENDATION_INTRO + "Which one do you want: Pay tax later, or Pay tax now?"
    ),
    (S.PLAN_RECOMMENDATION, "reprompt"): _RECOMMENDATION_INTRO + "Choose one: Pay tax later, or Pay tax now.",
    (S.PLAN_RECOMMENDATION, "edit"): "Choose your plan below.",
    (S.CONTRIBUTION, "prompt"): _CONTRIBUTION_QUESTION,
    # Investments
    (S.MONEY_HANDLING, "saved"): (
        "Got it. I've saved your contribution rate. You can review or change it below. "
        + _MONEY_HANDLING_QUESTION
    ),
    (S.MONEY_HANDLING, "prompt"): _MONEY_HANDLING_QUESTION,
    (S.MONEY_HANDLING, "edit"): "Okay. How do you want your money handled?",
    (S.MANUAL_RISK, "noted"): _HANDLING_NOTED + "How much ups and downs are you okay with?",
    (S.MANUAL_RISK, "prompt"): "How much ups and downs are you okay with?",
    (S.MANUAL_FUNDS, "prompt"): "Okay. Next, pick one fund in each group.",
    (S.MANUAL_FUNDS, "reprompt"): "Pick one fund in each group, then continue.",
    (S.MANUAL_ALLOCATION, "prompt"): "How do you want to split your money?",
    (S.MANUAL_ALLOCATION, "mismatch"): "That split doesn't add up yet. Please adjust it and try again.",
    (S.MANUAL_ALLOCATION, "edit"): "Okay. You can change how you split your money.",
    # Review
    (S.REVIEW, "noted"): _HANDLING_NOTED + "Review your choices below.",
    (S.REVIEW, "split_ok"): "Split looks good. Review your choices below.",
    (S.REVIEW, "updated"): "Got it, I've updated that. Review your choices below.",
    (S.REVIEW, "decline"): "Okay. You can change this later. Do you want me to submit this now?",
    (S.REVIEW, "summary"): (
        "Plan: {plan}. Saving: {saving}%. How your money is handled: {handling}. "
        "You can change this later. Do you want me to submit this now?"
    ),
    (S.CONFIRMED, "submitted"): "Done. I submitted your enrollment.",
    (S.CONFIRMED, "terminal"): "All set. Your enrollment has been submitted.",
}


def render(step: EnrollmentStep, variant: str = "prompt", **kwargs: Any) -> str:
    """Look up a message and interpolate ``kwargs`` into it.

    Raises:
        KeyError: If no message is registered for (step, variant).
    """
    template = MESSAGES[(step, variant)]
    return template.format(**kwargs) if kwargs else template


def format_percentage(value: float) -> str:
    """Render 8.0 as "8" and 7.5 as "7.5"."""
    return f"{value:g}"
