"""Domain enums used across the state machine and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class EnrollmentStep(str, Enum):
    """Steps of the enrollment conversation."""

    INTENT = "INTENT"
    ELIGIBILITY = "ELIGIBILITY"
    CURRENT_AGE = "CURRENT_AGE"
    RETIREMENT_AGE = "RETIREMENT_AGE"
    LOCATION = "LOCATION"
    PLAN_RECOMMENDATION = "PLAN_RECOMMENDATION"
    CONTRIBUTION = "CONTRIBUTION"
    MONEY_HANDLING = "MONEY_HANDLING"
    MANUAL_RISK = "MANUAL_RISK"
    MANUAL_FUNDS = "MANUAL_FUNDS"
    MANUAL_ALLOCATION = "MANUAL_ALLOCATION"
    REVIEW = "REVIEW"
    INELIGIBLE = "INELIGIBLE"
    CONFIRMED = "CONFIRMED"


class PlanChoice(str, Enum):
    """Tax treatment of contributions."""

    PAY_TAX_LATER = "PAY_TAX_LATER"  # traditional 401(k)
    PAY_TAX_NOW = "PAY_TAX_NOW"  # Roth 401(k)


class InvestmentStrategy(str, Enum):
    """Who decides how contributions are invested."""

    DEFAULT = "DEFAULT"
    MANUAL = "MANUAL"
    ADVISOR = "ADVISOR"


class RiskLevel(str, Enum):
    """Risk comfort scale for manual investing, lowest first."""

    CONSERVATIVE = "conservative"
    MODERATE = "moderate"
    GROWTH = "growth"
    AGGRESSIVE = "aggressive"


class DecisionKind(str, Enum):
    """Widget a client may render next to the prompt of a step."""

    START = "start"
    PLAN_CHOICE = "plan_choice"
    CONTRIBUTION = "contribution"
    MONEY_HANDLING = "money_handling"
    RISK_COMFORT = "risk_comfort"
    FUND_SELECTION = "fund_selection"
    ALLOCATION = "allocation"
    REVIEW = "review"
