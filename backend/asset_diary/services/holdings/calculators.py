# backend/asset_diary/services/holdings/calculators.py
"""
FIFO lot matching.

- LotLedger: the running state of one holding key
- FifoHoldingsCalculator: groups a raw trade ledger and replays each group
  through a LotLedger

Rules:
- BUY appends a lot and adds quantity x price to total cost
- SELL consumes the oldest lots first (partially when needed) and removes
  matched quantity x lot unit cost from total cost
- Selling more than is held raises InsufficientHoldingError before any
  state changes
- When quantity drops to zero, total and average cost reset to zero so a
  later buy starts a fresh basis

Usage:
    calc = FifoHoldingsCalculator()
    positions = calc.calculate(trades)
"""

from __future__ import annotations

import logging
from collections import deque
from decimal import Decimal
from typing import Any, Iterable

from asset_diary.models import TradeType
from asset_diary.services.exceptions import InsufficientHoldingError, InvalidTradeError, ValidationError
from asset_diary.services.holdings.types import HoldingKey, HoldingPosition, Lot, ZERO
from asset_diary.services.market_data.base import coerce_asset_class, normalize_symbol

logger = logging.getLogger(__name__)


# =============================================================================
# LOT LEDGER
# =============================================================================

class LotLedger:
    """
    FIFO lot queue for a single holding key.

    Attributes:
        key: Holding key this ledger tracks
        quantity: Units currently held
        total_cost: Cost basis of the units held
        average_cost: total_cost / quantity, or 0 when nothing is held
    """

    def __init__(self, key: HoldingKey) -> None:
        self.key = key
        self.quantity = ZERO
        self.total_cost = ZERO
        self.average_cost = ZERO
        self._lots: deque[Lot] = deque()

    @property
    def lots(self) -> list[Lot]:
        return [Lot(lot.quantity, lot.unit_cost, lot.trade_id) for lot in self._lots]

    def buy(self, quantity: Decimal, unit_cost: Decimal, trade_id: int | None = None) -> None:
        if quantity <= ZERO:
            raise InvalidTradeError(
                f"Buy quantity must be positive for {self.key.label}, got {quantity}",
                trade_id=trade_id,
            )
        if unit_cost < ZERO:
            raise InvalidTradeError(
                f"Buy price cannot be negative for {self.key.label}, got {unit_cost}",
                trade_id=trade_id,
            )

        self._lots.append(Lot(quantity=quantity, unit_cost=unit_cost, trade_id=trade_id))
        self.quantity += quantity
        self.total_cost += quantity * unit_cost
        self._refresh_average()

    def sell(self, quantity: Decimal, trade_id: int | None = None) -> None:
        if quantity <= ZERO:
            raise InvalidTradeError(
                f"Sell quantity must be positive for {self.key.label}, got {quantity}",
                trade_id=trade_id,
            )
        if quantity > self.quantity:
            raise InsufficientHoldingError(self.key.label, requested=quantity, available=self.quantity)

        remaining = quantity
        while remaining > ZERO:
            lot = self._lots[0]
            matched = min(lot.quantity, remaining)

            self.total_cost -= matched * lot.unit_cost
            lot.quantity -= matched
            remaining -= matched

            if lot.quantity == ZERO:
                self._lots.popleft()

        self.quantity -= quantity
        self._refresh_average()

    def to_position(self, ticker_name: str | None) -> HoldingPosition:
        return HoldingPosition(
            key=self.key,
            ticker_name=ticker_name,
            quantity=self.quantity,
            total_cost=self.total_cost,
            average_cost=self.average_cost,
            lots=self.lots,
        )

    def _refresh_average(self) -> None:
        if self.quantity > ZERO:
            self.average_cost = self.total_cost / self.quantity
        else:
            self.total_cost = ZERO
            self.average_cost = ZERO


# =============================================================================
# FIFO HOLDINGS CALCULATOR
# =============================================================================

class FifoHoldingsCalculator:
    """
    Turns a trade ledger into open positions.

    Trades may arrive in any order across keys. Within a key they are
    replayed by trade date; trades sharing a date keep their ledger order.

    Note:
        Only positions with quantity > 0 are returned.
    """

    def calculate(self, trades: Iterable[Any]) -> dict[HoldingKey, HoldingPosition]:
        """
        Run FIFO matching over every holding key in `trades`.

        Args:
            trades: Objects shaped like TradeRecord / models.Trade

        Returns:
            Open positions keyed by HoldingKey

        Raises:
            InsufficientHoldingError: A sell exceeds the quantity held
            InvalidTradeError: Non-positive quantity, negative price or
                unknown trade type / asset class
        """
        groups: dict[HoldingKey, list[Any]] = {}
        for trade in trades:
            groups.setdefault(self._key_for(trade), []).append(trade)

        positions: dict[HoldingKey, HoldingPosition] = {}

        for key, group in groups.items():
            ledger = LotLedger(key)
            ticker_name: str | None = None

            # sorted() is stable: same-date trades keep ledger order
            for trade in sorted(group, key=lambda t: t.trade_date):
                self.apply_trade(ledger, trade)
                if trade.ticker_name:
                    ticker_name = trade.ticker_name

            position = ledger.to_position(ticker_name)
            if position.has_position:
                positions[key] = position
            else:
                logger.debug(f"Dropping closed position {key.label}")

        return positions

    def apply_trade(self, ledger: LotLedger, trade: Any) -> None:
        trade_type = self._trade_type(trade)
        quantity = Decimal(str(trade.quantity))
        trade_id = getattr(trade, "id", None)

        if trade_type == TradeType.BUY:
            ledger.buy(quantity, Decimal(str(trade.price)), trade_id=trade_id)
        else:
            ledger.sell(quantity, trade_id=trade_id)

    @staticmethod
    def _trade_type(trade: Any) -> TradeType:
        raw = trade.trade_type
        if isinstance(raw, TradeType):
            return raw
        try:
            return TradeType(str(raw).strip().lower())
        except ValueError:
            raise InvalidTradeError(
                f"Unsupported trade type: '{raw}'",
                trade_id=getattr(trade, "id", None),
            )

    @staticmethod
    def _key_for(trade: Any) -> HoldingKey:
        try:
            asset_class = coerce_asset_class(trade.asset_class)
        except ValidationError as e:
            raise InvalidTradeError(e.message, trade_id=getattr(trade, "id", None))

        return HoldingKey(
            asset_class=asset_class,
            ticker=normalize_symbol(trade.ticker),
            currency=normalize_symbol(trade.currency),
        )
