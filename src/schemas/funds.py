"""Pydantic schema for a fund offered in the manual investment sub-flow."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class FundOption(BaseModel):
    """A fund the user can pick; one pick is expected per category."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    return_1y: str
    expense_ratio: str
