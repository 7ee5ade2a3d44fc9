"""Input interpretation helpers: keyword sets, numbers and widget payloads.

Matching is plain substring search on the normalized utterance. Each step
owns its keyword sets and the order they are checked in; sets are never
shared across steps even where they overlap ("later" means pay-tax-later in
PLAN_RECOMMENDATION but talk-to-an-advisor in MONEY_HANDLING).
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")
_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_WORD_CHAR_RE = re.compile(r"\w")

FUNDS_PREFIX = "funds:"
ALLOCATION_PREFIX = "alloc:"

# ── INTENT ───────────────────────────────────────────────────────────

INTENT_KEYWORDS: tuple[str, ...] = (
    "enroll",
    "enrollment",
    "start retirement",
    "start my retirement",
    "start plan",
    "retirement plan",
    "sign up",
)

# ── PLAN_RECOMMENDATION ──────────────────────────────────────────────

PLAN_LATER_KEYWORDS: tuple[str, ...] = ("pay tax later", "later", "traditional", "401")
PLAN_NOW_KEYWORDS: tuple[str, ...] = ("pay tax now", "now", "roth")

# ── CONTRIBUTION ─────────────────────────────────────────────────────

UNSURE_KEYWORDS: tuple[str, ...] = (
    "don't know",
    "dont know",
    "not sure",
    "no idea",
    "you pick",
    "whatever",
)

# ── MONEY_HANDLING (checked manual → advisor → system) ───────────────

MONEY_MANUAL_KEYWORDS: tuple[str, ...] = ("choose myself", "i want to choose", "myself", "manual")
MONEY_ADVISOR_KEYWORDS: tuple[str, ...] = ("advisor", "talk to an advisor", "advisor later", "later")
MONEY_SYSTEM_KEYWORDS: tuple[str, ...] = ("system", "handle it", "let the system", "automatic", "default")

# ── REVIEW ───────────────────────────────────────────────────────────

REVIEW_EDIT_PLAN_KEYWORDS: tuple[str, ...] = ("change plan", "edit plan")
REVIEW_EDIT_RETIREMENT_KEYWORDS: tuple[str, ...] = (
    "edit retirement age",
    "change retirement age",
    "edit retire age",
    "edit retirement",
)
REVIEW_EDIT_LOCATION_KEYWORDS: tuple[str, ...] = (
    "edit location",
    "change location",
    "edit country",
    "change country",
)
REVIEW_EDIT_KEYWORDS: tuple[str, ...] = ("edit", "change")
REVIEW_CONFIRM_KEYWORDS: tuple[str, ...] = ("yes", "yep", "ok", "okay", "submit", "confirm")
REVIEW_DECLINE_KEYWORDS: tuple[str, ...] = ("no", "not now", "later")


def normalize(utterance: str) -> str:
    """Lower-case and trim a raw utterance. No other NLP is applied."""
    return utterance.strip().lower()


def matches_any(text: str, keywords: Iterable[str]) -> bool:
    """Check if any keyword occurs as a substring of ``text``."""
    return any(keyword in text for keyword in keywords)


def is_noise(text: str) -> bool:
    """True for empty input or input made only of punctuation and spaces."""
    return _WORD_CHAR_RE.search(text) is None


def extract_number(text: str) -> float | None:
    """Return the first integer or decimal found in ``text``."""
    match = _NUMBER_RE.search(text)
    if match is None:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def extract_percentage(text: str) -> float | None:
    """Return the first ``%``-suffixed number found in ``text``."""
    match = _PERCENT_RE.search(text)
    if match is None:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None


def parse_fund_selection(text: str) -> tuple[str, ...] | None:
    """Parse a ``funds:<id>,<id>`` payload sent by the fund picker.

    Returns the ids in order with empty entries dropped, or None when the
    payload is missing its prefix or names no fund at all.
    """
    if not text.startswith(FUNDS_PREFIX):
        return None
    ids = tuple(part.strip() for part in text[len(FUNDS_PREFIX):].split(","))
    ids = tuple(fund_id for fund_id in ids if fund_id)
    return ids or None


def parse_allocation(text: str) -> dict[str, float] | None:
    """Parse an ``alloc:<id>:<pct>,...`` payload sent by the allocation sliders.

    Pairs with a missing id, a non-numeric value, or a value outside
    [0, 100] are skipped. Returns None when the prefix is missing.
    """
    if not text.startswith(ALLOCATION_PREFIX):
        return None

    allocations: dict[str, float] = {}
    for pair in text[len(ALLOCATION_PREFIX):].split(","):
        parts = pair.split(":")
        if len(parts) < 2:
            continue
        fund_id = parts[0].strip()
        raw_value = parts[1].strip().rstrip("%").strip()
        if not fund_id:
            continue
        try:
            value = float(raw_value)
        except ValueError:
            logger.debug("Skipping allocation pair with bad value: %r", pair)
            continue
        if not math.isfinite(value) or value < 0 or value > 100:
            continue
        allocations[fund_id] = value
    return allocations


def even_split(fund_ids: Iterable[str]) -> dict[str, int]:
    """Split 100% evenly; the remainder goes one point each to the first ids."""
    ids = list(fund_ids)
    if not ids:
        return {}
    base, remainder = divmod(100, len(ids))
    return {fund_id: base + (1 if index < remainder else 0) for index, fund_id in enumerate(ids)}
