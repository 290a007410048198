# backend/asset_diary/services/valuation/service.py
"""
Valuation Service - a user's net worth in their display currency.

Entry points:
- valuate_user(): holdings + account balances, folded into one figure
- record_daily_snapshot(): persist today's figure for one user
- record_all_users(): daily job body; one failing user never stops the run
- get_daily_values(): snapshots for a date range (charts)

Folding rule (same as holdings):
    same currency        -> amount
    usable rate present  -> amount / rate
    otherwise            -> skipped, with a warning

Design Principles:
- Dependency Injection: HoldingsService and FX service via constructor
- No HTTP Knowledge: raises domain exceptions, not HTTPException
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_diary.models import Account, User, UserDailyTotalAssetValue
from asset_diary.services.exceptions import ValidationError
from asset_diary.services.holdings.types import ZERO
from asset_diary.services.valuation.types import SnapshotRunResult, TotalValuation, ValuedItem
from asset_diary.utils.fx_conversion import convert_to_display_currency, normalize_currency

if TYPE_CHECKING:
    from asset_diary.services.holdings.service import HoldingsService
    from asset_diary.services.protocols import ExchangeRateServiceProtocol

logger = logging.getLogger(__name__)


class ValuationService:
    """
    Net worth across holdings and cash accounts.

    Attributes:
        _holdings_service: Supplies valued holdings and user lookups
        _fx_service: Reads stored exchange rates
    """

    def __init__(
            self,
            holdings_service: HoldingsService,
            fx_service: ExchangeRateServiceProtocol,
    ) -> None:
        self._holdings_service = holdings_service
        self._fx_service = fx_service

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def valuate_user(self, db: Session, user_id: int) -> TotalValuation:
        """
        Current net worth of a user.

        Args:
            db: Database session
            user_id: User to value

        Returns:
            TotalValuation in the user's display currency

        Raises:
            UserNotFoundError: Unknown user
            InsufficientHoldingError, InvalidTradeError: corrupt trade ledger
        """
        user = self._holdings_service.get_user(db, user_id)
        display_currency = self._holdings_service.resolve_display_currency(user)
        rates = self._fx_service.rates_for(db, display_currency)

        holdings = self._holdings_service.aggregate(
            self._holdings_service.load_trades(db, user_id),
            display_currency,
            rates,
        )
        accounts = db.scalars(
            select(Account).where(Account.user_id == user_id).order_by(Account.id)
        ).all()

        holding_items = [
            ValuedItem("holding", h.ticker, h.total_value, h.currency)
            for h in holdings.values()
        ]
        account_items = [
            ValuedItem("account", a.name, a.balance, a.currency)
            for a in accounts
        ]

        skipped: list[str] = []
        warnings: list[str] = []
        holdings_value = self.fold(holding_items, display_currency, rates, skipped, warnings)
        accounts_value = self.fold(account_items, display_currency, rates, skipped, warnings)

        for holding in holdings.values():
            if not holding.price_available:
                warnings.append(f"holding {holding.ticker}: price unavailable, valued at 0")

        total = holdings_value + accounts_value
        logger.info(
            f"Valuated user {user_id}: {total} {display_currency} "
            f"({len(holding_items)} holdings, {len(account_items)} accounts, "
            f"{len(skipped)} currencies skipped)"
        )

        return TotalValuation(
            user_id=user_id,
            currency=display_currency,
            total_value=total,
            holdings_value=holdings_value,
            accounts_value=accounts_value,
            holdings=sorted(holdings.values(), key=lambda h: (h.asset_class.value, h.ticker, h.currency)),
            skipped_currencies=sorted(set(skipped)),
            warnings=warnings,
        )

    def record_daily_snapshot(
            self,
            db: Session,
            user_id: int,
            snapshot_date: date | None = None,
    ) -> UserDailyTotalAssetValue:
        """
        Value a user now and store it under `snapshot_date` (default: today, UTC).

        Re-running for the same (user, date) overwrites the earlier figure.
        """
        snapshot_date = snapshot_date or datetime.now(timezone.utc).date()
        valuation = self.valuate_user(db, user_id)

        snapshot = db.scalar(
            select(UserDailyTotalAssetValue).where(
                UserDailyTotalAssetValue.user_id == user_id,
                UserDailyTotalAssetValue.date == snapshot_date,
            )
        )
        if snapshot is None:
            snapshot = UserDailyTotalAssetValue(user_id=user_id, date=snapshot_date)
            db.add(snapshot)

        snapshot.total_value = valuation.total_value
        snapshot.currency = valuation.currency
        db.commit()
        db.refresh(snapshot)

        logger.info(
            f"Recorded daily value for user {user_id} on {snapshot_date}: "
            f"{valuation.total_value} {valuation.currency}"
        )
        return snapshot

    def record_all_users(self, db: Session, snapshot_date: date | None = None) -> SnapshotRunResult:
        """
        Daily job: snapshot every user, logging and continuing past failures.
        """
        snapshot_date = snapshot_date or datetime.now(timezone.utc).date()
        result = SnapshotRunResult(snapshot_date=snapshot_date)

        user_ids = list(db.scalars(select(User.id).order_by(User.id)).all())
        logger.info(f"Recording daily values for {len(user_ids)} users on {snapshot_date}")

        for user_id in user_ids:
            try:
                self.record_daily_snapshot(db, user_id, snapshot_date)
                result.recorded.append(user_id)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to record daily value for user {user_id}: {e}")
                result.failed[user_id] = str(e)

        logger.info(
            f"Daily value run complete: recorded={len(result.recorded)}, failed={len(result.failed)}"
        )
        return result

    def get_daily_values(
            self,
            db: Session,
            user_id: int,
            start_date: date,
            end_date: date,
    ) -> list[UserDailyTotalAssetValue]:
        """
        Stored snapshots for a user between two dates (inclusive), oldest first.

        Raises:
            ValidationError: start_date is after end_date
            UserNotFoundError: Unknown user
        """
        if start_date > end_date:
            raise ValidationError(
                f"start_date ({start_date}) must be on or before end_date ({end_date})",
                field="start_date",
            )
        self._holdings_service.get_user(db, user_id)

        query = (
            select(UserDailyTotalAssetValue)
            .where(
                UserDailyTotalAssetValue.user_id == user_id,
                UserDailyTotalAssetValue.date >= start_date,
                UserDailyTotalAssetValue.date <= end_date,
            )
            .order_by(UserDailyTotalAssetValue.date)
        )
        return list(db.scalars(query).all())

    # =========================================================================
    # FOLDING
    # =========================================================================

    @staticmethod
    def fold(
            items: list[ValuedItem],
            display_currency: str,
            rates: dict[str, Decimal],
            skipped: list[str],
            warnings: list[str],
    ) -> Decimal:
        """
        Sum `items` in `display_currency`, appending to `skipped` / `warnings`
        for every item that has no usable rate.
        """
        display_currency = normalize_currency(display_currency)
        total = ZERO

        for item in items:
            converted = convert_to_display_currency(item.amount, item.currency, display_currency, rates)
            if converted is None:
                currency = normalize_currency(item.currency)
                logger.warning(
                    f"No exchange rate {display_currency}/{currency}; "
                    f"skipping {item.source} {item.label}"
                )
                skipped.append(currency)
                warnings.append(f"{item.source} {item.label}: no exchange rate for {currency}")
                continue
            total += converted

        return total
