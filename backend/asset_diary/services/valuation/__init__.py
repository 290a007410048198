# backend/asset_diary/services/valuation/__init__.py
"""
Valuation Service Package.

Usage:
    from asset_diary.services.valuation import ValuationService

    service = ValuationService(holdings_service, fx_service)
    valuation = service.valuate_user(db, user_id=1)

Architecture:
    valuation/
    ├── __init__.py    # This file - package exports
    ├── types.py       # Internal data classes
    └── service.py     # ValuationService

Data Flow:
    Holdings (HoldingsService) + Accounts → fold by exchange rate → TotalValuation
    TotalValuation → UserDailyTotalAssetValue (daily snapshot)
"""

from asset_diary.services.valuation.service import ValuationService
from asset_diary.services.valuation.types import SnapshotRunResult, TotalValuation, ValuedItem

__all__ = [
    "ValuationService",
    "TotalValuation",
    "SnapshotRunResult",
    "ValuedItem",
]
