# backend/asset_diary/services/holdings/__init__.py
"""
Holdings package.

Architecture:
    holdings/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Internal data classes
    ├── calculators.py    # LotLedger + FifoHoldingsCalculator
    └── service.py        # HoldingsService (orchestrator)

Data Flow:
    Trades → FifoHoldingsCalculator → HoldingPositions
    HoldingPositions → PriceSource (concurrent) → Holdings
"""

from asset_diary.services.holdings.calculators import FifoHoldingsCalculator, LotLedger
from asset_diary.services.holdings.service import HoldingsService
from asset_diary.services.holdings.types import (
    Holding,
    HoldingKey,
    HoldingPosition,
    HoldingsResult,
    Lot,
    TradeRecord,
)

__all__ = [
    "FifoHoldingsCalculator",
    "LotLedger",
    "HoldingsService",
    "Holding",
    "HoldingKey",
    "HoldingPosition",
    "HoldingsResult",
    "Lot",
    "TradeRecord",
]
