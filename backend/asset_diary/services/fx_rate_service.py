# backend/asset_diary/services/fx_rate_service.py
"""
Exchange rate service.

Two responsibilities, split between read and write paths:

- rates_for(): pure lookup of stored rates for a base currency. This is the
  only call made while computing holdings or net worth; it never touches
  the network.
- sync_rates(): fetches the latest rates from a live provider and upserts
  them. Run by an external scheduler (cron, admin task), never on a request.

=============================================================================
RATE CONVENTION
=============================================================================

    rate = "1 base_currency = X target_currency"

Example:
    base_currency = "USD", target_currency = "TWD", rate = 32.5
    Meaning: 1 USD = 32.5 TWD

Conversion into the base (display) currency divides:
    USD_amount = TWD_amount / 32.5

Usage:
    service = ExchangeRateService(provider=YahooPriceProvider())

    rates = service.rates_for(db, "USD")      # {"TWD": Decimal("32.5"), ...}
    result = service.sync_rates(db, "USD", ["TWD", "EUR"])
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_diary.models import ExchangeRate
from asset_diary.services.exceptions import FXProviderError
from asset_diary.services.protocols import FXRateProvider
from asset_diary.utils.fx_conversion import normalize_currency

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

@dataclass
class FXSyncResult:
    """Result of an FX rate sync run for one base currency."""

    base_currency: str
    rates_inserted: int = 0
    rates_updated: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def rates_stored(self) -> int:
        return self.rates_inserted + self.rates_updated

    @property
    def success(self) -> bool:
        return len(self.errors) == 0


# =============================================================================
# EXCHANGE RATE SERVICE
# =============================================================================

class ExchangeRateService:
    """
    Reads stored exchange rates and refreshes them from a provider.

    Args:
        provider: Live FX source for sync_rates(); may be None for a
            read-only service (e.g., in tests)
    """

    def __init__(self, provider: FXRateProvider | None = None) -> None:
        self._provider = provider

    # =========================================================================
    # READ PATH
    # =========================================================================

    def rates_for(self, db: Session, base_currency: str) -> dict[str, Decimal]:
        """
        All stored rates for a base currency.

        Missing pairs are simply absent; callers decide how to degrade.

        Returns:
            target_currency -> rate
        """
        base = normalize_currency(base_currency)
        query = select(ExchangeRate.target_currency, ExchangeRate.rate).where(
            ExchangeRate.base_currency == base
        )
        rates = {target: rate for target, rate in db.execute(query).all()}

        logger.debug(f"Loaded {len(rates)} exchange rates for base {base}")
        return rates

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    def sync_rates(
            self,
            db: Session,
            base_currency: str,
            target_currencies: list[str],
    ) -> FXSyncResult:
        """
        Fetch the latest rate for each target and upsert it.

        A failing pair is recorded in the result and does not stop the others.

        Args:
            db: Database session
            base_currency: Base currency (e.g., "USD")
            target_currencies: Currencies to quote against the base

        Returns:
            FXSyncResult with counts and per-pair errors

        Raises:
            FXProviderError: No provider configured, or every pair failed
        """
        base = normalize_currency(base_currency)
        result = FXSyncResult(base_currency=base)

        if self._provider is None:
            raise FXProviderError("none", "no FX rate provider configured")

        targets = sorted({normalize_currency(t) for t in target_currencies} - {base, ""})
        if not targets:
            logger.info(f"No target currencies to sync for {base}")
            return result

        logger.info(f"Syncing exchange rates for {base}: {', '.join(targets)}")
        fetched_at = datetime.now(timezone.utc)

        for target in targets:
            try:
                rate = self._provider.get_fx_rate(base, target)
            except Exception as e:
                logger.error(f"Failed to fetch {base}/{target} from {self._provider.name}: {e}")
                result.errors[target] = str(e)
                continue

            if self._upsert_rate(db, base, target, rate, fetched_at):
                result.rates_inserted += 1
            else:
                result.rates_updated += 1

        db.commit()

        if result.rates_stored == 0:
            raise FXProviderError(
                self._provider.name,
                f"no rates stored for {base} ({len(result.errors)} pairs failed)",
            )

        logger.info(
            f"Exchange rate sync complete for {base}: "
            f"inserted={result.rates_inserted}, updated={result.rates_updated}, "
            f"failed={len(result.errors)}"
        )
        return result

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    def _upsert_rate(
            self,
            db: Session,
            base: str,
            target: str,
            rate: Decimal,
            fetched_at: datetime,
    ) -> bool:
        """Insert or update one pair. Returns True when a row was inserted."""
        existing = db.scalar(
            select(ExchangeRate).where(
                ExchangeRate.base_currency == base,
                ExchangeRate.target_currency == target,
            )
        )

        if existing is not None:
            existing.rate = rate
            existing.provider = self._provider.name
            existing.last_updated = fetched_at
            return False

        db.add(ExchangeRate(
            base_currency=base,
            target_currency=target,
            rate=rate,
            provider=self._provider.name,
            last_updated=fetched_at,
        ))
        return True
