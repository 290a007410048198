# backend/asset_diary/schemas/valuation.py
"""
Pydantic schemas for net worth.

- NetWorthResponse: current valuation across holdings and accounts
- DailyValueResponse / NetWorthHistoryResponse: stored daily snapshots
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from asset_diary.schemas.holdings import HoldingResponse
from asset_diary.services.constants import CURRENCY_PRECISION


class NetWorthResponse(BaseModel):
    """Net worth of a user in their display currency."""

    user_id: int
    currency: str = Field(..., description="Display currency of every total below")
    total_value: Decimal
    holdings_value: Decimal
    accounts_value: Decimal
    holdings: list[HoldingResponse]
    skipped_currencies: list[str] = Field(
        default_factory=list,
        description="Currencies left out of the totals for lack of an exchange rate"
    )
    warnings: list[str] = Field(default_factory=list)

    @field_serializer("total_value", "holdings_value", "accounts_value")
    def _round_money(self, value: Decimal) -> Decimal:
        return value.quantize(CURRENCY_PRECISION)


class DailyValueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    total_value: Decimal
    currency: str


class NetWorthHistoryResponse(BaseModel):
    user_id: int
    start_date: dt.date
    end_date: dt.date
    values: list[DailyValueResponse]
