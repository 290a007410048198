#!/usr/bin/env python3
"""Daily job: record every user's net worth for one day.

Re-running for a day that already has a figure overwrites it, so the job can
be retried after a partial failure.

Usage:
    python scripts/record_daily_values.py
    python scripts/record_daily_values.py --date 2025-01-31
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from asset_diary.config import settings
from asset_diary.database import SessionLocal
from asset_diary.dependencies import build_services
from asset_diary.utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Record daily net worth snapshots for all users")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Snapshot date (YYYY-MM-DD). Defaults to today (UTC)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging()

    services = build_services(settings, SessionLocal)
    db = SessionLocal()
    try:
        result = services.valuation_service.record_all_users(db, args.date)
    finally:
        db.close()
        services.close()

    for user_id, error in result.failed.items():
        logger.error(f"user {user_id}: {error}")

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
