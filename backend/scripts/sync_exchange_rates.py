#!/usr/bin/env python3
"""Refresh stored exchange rates from Yahoo Finance.

Without arguments, every display currency in use (user defaults plus the
configured default) is synced against every currency that appears in
trades or accounts.

Usage:
    python scripts/sync_exchange_rates.py
    python scripts/sync_exchange_rates.py --base USD --targets TWD EUR
"""

import argparse
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select
from sqlalchemy.orm import Session

from asset_diary.config import settings
from asset_diary.database import SessionLocal
from asset_diary.models import Account, Trade, User
from asset_diary.services.exceptions import FXProviderError
from asset_diary.services.fx_rate_service import ExchangeRateService
from asset_diary.services.market_data import YahooPriceProvider
from asset_diary.utils import setup_logging
from asset_diary.utils.fx_conversion import normalize_currency

logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Sync exchange rates into the database")
    parser.add_argument("--base", nargs="+", default=None, help="Base (display) currencies")
    parser.add_argument("--targets", nargs="+", default=None, help="Currencies to quote against each base")
    return parser.parse_args()


def _currencies_in_use(db: Session) -> set[str]:
    currencies = set(db.scalars(select(Trade.currency).distinct()).all())
    currencies |= set(db.scalars(select(Account.currency).distinct()).all())
    return {normalize_currency(c) for c in currencies if c}


def _display_currencies(db: Session) -> set[str]:
    defaults = db.scalars(
        select(User.default_currency).where(User.default_currency.is_not(None)).distinct()
    ).all()
    return {normalize_currency(c) for c in defaults} | {settings.default_display_currency}


def main() -> int:
    args = parse_args()
    setup_logging()

    provider = YahooPriceProvider(max_retry_attempts=settings.provider_retry_attempts)
    service = ExchangeRateService(provider=provider)
    failed = False

    db = SessionLocal()
    try:
        bases = {normalize_currency(b) for b in args.base} if args.base else _display_currencies(db)
        targets = [normalize_currency(t) for t in args.targets] if args.targets else sorted(_currencies_in_use(db))

        for base in sorted(bases):
            try:
                result = service.sync_rates(db, base, targets)
            except FXProviderError as e:
                logger.error(f"FX sync for {base} failed: {e}")
                failed = True
                continue
            if result.errors:
                failed = True
    finally:
        db.close()
        provider.close()

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
