# backend/asset_diary/services/holdings/types.py
"""
Internal data types for holdings aggregation.

These dataclasses are NOT Pydantic schemas - the API shapes live in
asset_diary/schemas/holdings.py.

Design Principles:
- Decimal for every quantity and money value (never float)
- Holdings are derived, never stored: every type here is rebuilt per request
- Grouping identity is (asset_class, ticker, currency); the same ticker
  bought in two currencies is two holdings

Type Hierarchy:
    TradeRecord      - Plain trade input (the ORM Trade has the same shape)
    HoldingKey       - Grouping identity
    Lot              - One open FIFO lot
    HoldingPosition  - Lot-matching output for one key
    Holding          - Position plus price, value and gain/loss
    HoldingsResult   - All holdings of one user in their display currency
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from asset_diary.models import AssetClass, TradeType

ZERO = Decimal("0")


@dataclass(frozen=True)
class TradeRecord:
    """
    A ledger entry decoupled from the database.

    Any object exposing these attributes (including models.Trade) can be fed
    to the calculator.
    """

    trade_type: TradeType | str
    asset_class: AssetClass | str
    ticker: str
    quantity: Decimal
    price: Decimal
    currency: str
    trade_date: datetime
    ticker_name: str | None = None
    id: int | None = None


class HoldingKey(NamedTuple):
    asset_class: AssetClass
    ticker: str
    currency: str

    @property
    def label(self) -> str:
        return f"{self.asset_class.value}/{self.ticker}/{self.currency}"


@dataclass
class Lot:
    """An open lot: what is left of one buy after earlier sells consumed it."""

    quantity: Decimal
    unit_cost: Decimal
    trade_id: int | None = None


@dataclass
class HoldingPosition:
    """
    Result of FIFO lot matching for one holding key.

    Invariants:
        quantity == sum(lot.quantity for lot in lots)
        total_cost == sum(lot.quantity * lot.unit_cost for lot in lots)
        average_cost == total_cost / quantity (quantity > 0)
    """

    key: HoldingKey
    ticker_name: str | None
    quantity: Decimal
    total_cost: Decimal
    average_cost: Decimal
    lots: list[Lot] = field(default_factory=list)

    @property
    def has_position(self) -> bool:
        return self.quantity > ZERO


@dataclass
class Holding:
    """
    A valued position.

    Attributes:
        current_price: Latest price in `currency`; 0 when unavailable
        total_value: quantity x current_price, in `currency`
        total_value_in_display_currency: total_value converted to the
            user's display currency; None when no usable rate exists
        gain_loss: total_value - total_cost
        gain_loss_percentage: gain_loss / total_cost x 100; 0 when total_cost is 0
        price_available: False when every price source failed
        warnings: Degradations that affected this holding
    """

    ticker: str
    ticker_name: str | None
    asset_class: AssetClass
    currency: str
    quantity: Decimal
    average_cost: Decimal
    total_cost: Decimal
    current_price: Decimal
    total_value: Decimal
    total_value_in_display_currency: Decimal | None
    gain_loss: Decimal
    gain_loss_percentage: Decimal
    price_available: bool = True
    warnings: list[str] = field(default_factory=list)

    @property
    def key(self) -> HoldingKey:
        return HoldingKey(self.asset_class, self.ticker, self.currency)


@dataclass
class HoldingsResult:
    user_id: int
    display_currency: str
    holdings: list[Holding]
    warnings: list[str] = field(default_factory=list)

    @property
    def total_value_in_display_currency(self) -> Decimal:
        """Sum of converted holding values; holdings without a rate are left out."""
        return sum(
            (h.total_value_in_display_currency for h in self.holdings
             if h.total_value_in_display_currency is not None),
            ZERO,
        )
