# backend/asset_diary/schemas/prices.py
"""Pydantic schemas for live price lookups."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from asset_diary.models import AssetClass


class PriceQuoteResponse(BaseModel):
    """A current price, possibly served from cache."""

    model_config = ConfigDict(from_attributes=True)

    asset_class: AssetClass
    symbol: str = Field(..., description="Normalized symbol, e.g. 'AAPL' or '2330'")
    name: str | None = Field(default=None, description="Display name when known")
    price: Decimal
    currency: str = Field(..., description="Currency the price is quoted in")
    observed_at: datetime = Field(..., description="When the provider produced the price")
