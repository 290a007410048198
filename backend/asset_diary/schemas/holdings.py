# backend/asset_diary/schemas/holdings.py
"""
Pydantic schemas for holdings.

Built from services.holdings.types.Holding via from_attributes; monetary
values are rounded for display only, calculations stay at full precision.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from asset_diary.models import AssetClass
from asset_diary.services.constants import CURRENCY_PRECISION, PERCENTAGE_PRECISION, SHARE_PRECISION


class HoldingResponse(BaseModel):
    """One open position valued at the current price."""

    model_config = ConfigDict(from_attributes=True)

    ticker: str
    ticker_name: str | None = None
    asset_class: AssetClass
    currency: str = Field(..., description="Currency the position is held and priced in")
    quantity: Decimal
    average_cost: Decimal = Field(..., description="FIFO average cost of the units still held")
    total_cost: Decimal
    current_price: Decimal = Field(..., description="0 when no price source could answer")
    total_value: Decimal
    total_value_in_display_currency: Decimal | None = Field(
        default=None,
        description="None when no exchange rate exists for this currency"
    )
    gain_loss: Decimal
    gain_loss_percentage: Decimal
    price_available: bool
    warnings: list[str] = Field(default_factory=list)

    @field_serializer("quantity")
    def _round_quantity(self, value: Decimal) -> Decimal:
        return value.quantize(SHARE_PRECISION)

    @field_serializer("average_cost", "total_cost", "current_price", "total_value", "gain_loss")
    def _round_money(self, value: Decimal) -> Decimal:
        return value.quantize(CURRENCY_PRECISION)

    @field_serializer("total_value_in_display_currency")
    def _round_optional_money(self, value: Decimal | None) -> Decimal | None:
        return None if value is None else value.quantize(CURRENCY_PRECISION)

    @field_serializer("gain_loss_percentage")
    def _round_percentage(self, value: Decimal) -> Decimal:
        return value.quantize(PERCENTAGE_PRECISION)


class HoldingsResponse(BaseModel):
    """All open positions of a user."""

    user_id: int
    display_currency: str
    holdings: list[HoldingResponse]
    total_value_in_display_currency: Decimal = Field(
        ...,
        description="Sum over holdings that could be converted"
    )
    warnings: list[str] = Field(default_factory=list)

    @field_serializer("total_value_in_display_currency")
    def _round_money(self, value: Decimal) -> Decimal:
        return value.quantize(CURRENCY_PRECISION)
