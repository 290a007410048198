# backend/asset_diary/services/holdings/service.py
"""
Holdings Service - derives a user's current holdings from their trades.

Pipeline:
    Trades -> FifoHoldingsCalculator -> HoldingPositions
    HoldingPositions -> concurrent price lookups -> Holdings
    Holdings -> display-currency conversion via stored exchange rates

Failure policy:
- Ledger integrity errors (oversell, invalid trade) abort the whole call
- A price failure only degrades its own holding (price and value become 0)
- A missing exchange rate leaves total_value_in_display_currency as None

Design Principles:
- Dependency Injection: price source and FX service via constructor
- No HTTP Knowledge: raises domain exceptions, not HTTPException
"""

from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_diary.models import Trade, User
from asset_diary.services.constants import DEFAULT_DISPLAY_CURRENCY, HUNDRED
from asset_diary.services.exceptions import UserNotFoundError
from asset_diary.services.holdings.calculators import FifoHoldingsCalculator
from asset_diary.services.holdings.types import (
    Holding,
    HoldingKey,
    HoldingPosition,
    HoldingsResult,
    ZERO,
)
from asset_diary.utils.fx_conversion import convert_to_display_currency, normalize_currency

if TYPE_CHECKING:
    from asset_diary.services.protocols import ExchangeRateServiceProtocol, PriceSource

logger = logging.getLogger(__name__)


class HoldingsService:
    """
    Aggregates trades into valued holdings.

    Attributes:
        _price_source: Where current prices come from (usually cached + fallback)
        _fx_service: Reads stored exchange rates
        _default_display_currency: Used when a user has no default currency
        _max_workers: Optional cap on concurrent price lookups; None means one
            worker per holding
    """

    def __init__(
            self,
            price_source: PriceSource,
            fx_service: ExchangeRateServiceProtocol,
            default_display_currency: str = DEFAULT_DISPLAY_CURRENCY,
            max_workers: int | None = None,
            calculator: FifoHoldingsCalculator | None = None,
    ) -> None:
        self._price_source = price_source
        self._fx_service = fx_service
        self._default_display_currency = normalize_currency(default_display_currency)
        self._max_workers = max_workers
        self._calculator = calculator or FifoHoldingsCalculator()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def list_holdings(self, db: Session, user_id: int) -> HoldingsResult:
        """
        Current holdings for a user, valued in their display currency.

        Args:
            db: Database session
            user_id: User whose ledger to aggregate

        Returns:
            HoldingsResult sorted by asset class, ticker and currency

        Raises:
            UserNotFoundError: Unknown user
            InsufficientHoldingError: The ledger oversells a holding
            InvalidTradeError: The ledger contains an unmatchable trade
        """
        user = self.get_user(db, user_id)
        display_currency = self.resolve_display_currency(user)
        rates = self._fx_service.rates_for(db, display_currency)

        holdings = self.aggregate(self.load_trades(db, user_id), display_currency, rates)

        ordered = sorted(holdings.values(), key=lambda h: (h.asset_class.value, h.ticker, h.currency))
        warnings = [f"{h.ticker}: {w}" for h in ordered for w in h.warnings]

        return HoldingsResult(
            user_id=user_id,
            display_currency=display_currency,
            holdings=ordered,
            warnings=warnings,
        )

    def aggregate(
            self,
            trades: Iterable[Any],
            display_currency: str,
            rates: dict[str, Decimal],
    ) -> dict[HoldingKey, Holding]:
        """
        FIFO-match `trades` and value every open position.

        Prices are fetched concurrently, one task per open position. The
        result order is not meaningful; use the keys.

        Args:
            trades: Ledger entries (TradeRecord or models.Trade)
            display_currency: Currency net worth is expressed in
            rates: target_currency -> rate for base = display_currency

        Returns:
            Holdings keyed by HoldingKey; closed positions are absent

        Raises:
            InsufficientHoldingError, InvalidTradeError: before any price is fetched
        """
        positions = self._calculator.calculate(trades)
        if not positions:
            return {}

        display_currency = normalize_currency(display_currency)
        workers = len(positions)
        if self._max_workers is not None:
            workers = min(workers, self._max_workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="price-lookup") as executor:
            futures = {
                key: executor.submit(
                    contextvars.copy_context().run,
                    self._value_position, position, display_currency, rates,
                )
                for key, position in positions.items()
            }
            return {key: future.result() for key, future in futures.items()}

    # =========================================================================
    # LOOKUP HELPERS (shared with ValuationService)
    # =========================================================================

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def resolve_display_currency(self, user: User) -> str:
        currency = normalize_currency(user.default_currency)
        if currency:
            return currency

        logger.info(
            f"User {user.id} has no default currency, using {self._default_display_currency}"
        )
        return self._default_display_currency

    @staticmethod
    def load_trades(db: Session, user_id: int) -> list[Trade]:
        query = (
            select(Trade)
            .where(Trade.user_id == user_id)
            .order_by(Trade.created_at, Trade.id)
        )
        return list(db.scalars(query).all())

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _value_position(
            self,
            position: HoldingPosition,
            display_currency: str,
            rates: dict[str, Decimal],
    ) -> Holding:
        key = position.key
        warnings: list[str] = []
        ticker_name = position.ticker_name

        try:
            quote = self._price_source.get_price(key.asset_class, key.ticker)
            price = quote.price
            price_available = True
            ticker_name = ticker_name or quote.name
            if quote.currency != key.currency:
                warnings.append(
                    f"Price quoted in {quote.currency} but holding is in {key.currency}"
                )
        except Exception as e:
            # Isolated per holding: siblings keep their prices
            logger.warning(f"Price lookup failed for {key.label}: {e}")
            price = ZERO
            price_available = False
            warnings.append(f"Price unavailable: {e}")

        total_value = position.quantity * price
        gain_loss = total_value - position.total_cost
        if position.total_cost == ZERO:
            gain_loss_percentage = ZERO
        else:
            gain_loss_percentage = gain_loss / position.total_cost * HUNDRED

        converted = convert_to_display_currency(total_value, key.currency, display_currency, rates)
        if converted is None:
            logger.warning(
                f"No exchange rate {display_currency}/{key.currency}; "
                f"{key.label} excluded from display-currency totals"
            )
            warnings.append(f"No exchange rate for {key.currency} in {display_currency}")

        return Holding(
            ticker=key.ticker,
            ticker_name=ticker_name,
            asset_class=key.asset_class,
            currency=key.currency,
            quantity=position.quantity,
            average_cost=position.average_cost,
            total_cost=position.total_cost,
            current_price=price,
            total_value=total_value,
            total_value_in_display_currency=converted,
            gain_loss=gain_loss,
            gain_loss_percentage=gain_loss_percentage,
            price_available=price_available,
            warnings=warnings,
        )
