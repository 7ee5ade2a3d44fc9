"""Fund catalogue and risk scale offered in the manual investment sub-flow."""

from __future__ import annotations

from src.models.enums import RiskLevel
from src.schemas.funds import FundOption

FUND_CATALOG: tuple[FundOption, ...] = (
    FundOption(id="us-lg", name="US Large Cap Index", category="US Stock", return_1y="+12.4%", expense_ratio="0.02%"),
    FundOption(id="us-mid", name="US Mid Cap Index", category="US Stock", return_1y="+10.1%", expense_ratio="0.03%"),
    FundOption(id="us-sm", name="US Small Cap Index", category="US Stock", return_1y="+8.7%", expense_ratio="0.04%"),
    FundOption(id="intl", name="International Index", category="International", return_1y="+6.2%", expense_ratio="0.06%"),
    FundOption(id="intl-em", name="Emerging Markets", category="International", return_1y="+4.1%", expense_ratio="0.12%"),
    FundOption(id="bond-ag", name="Bond Aggregate", category="Bonds", return_1y="+2.3%", expense_ratio="0.03%"),
    FundOption(id="bond-tips", name="TIPS", category="Bonds", return_1y="+1.8%", expense_ratio="0.05%"),
)

_FUNDS_BY_ID: dict[str, FundOption] = {fund.id: fund for fund in FUND_CATALOG}

# (label, hint) per risk level, in display order
RISK_OPTIONS: dict[RiskLevel, tuple[str, str]] = {
    RiskLevel.CONSERVATIVE: ("Conservative", "Less risk, steadier"),
    RiskLevel.MODERATE: ("Moderate", "Balanced"),
    RiskLevel.GROWTH: ("Growth", "More growth, more risk"),
    RiskLevel.AGGRESSIVE: ("Aggressive", "Highest growth potential"),
}


def get_fund(fund_id: str) -> FundOption | None:
    """Look up a catalogue fund by id."""
    return _FUNDS_BY_ID.get(fund_id)


def fund_name(fund_id: str) -> str:
    """Display name for a fund id, falling back to the id itself."""
    fund = get_fund(fund_id)
    return fund.name if fund is not None else fund_id


def funds_by_category() -> dict[str, list[FundOption]]:
    """Group the catalogue by category, keeping catalogue order."""
    grouped: dict[str, list[FundOption]] = {}
    for fund in FUND_CATALOG:
        grouped.setdefault(fund.category, []).append(fund)
    return grouped
