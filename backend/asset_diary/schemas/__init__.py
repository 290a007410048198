# backend/asset_diary/schemas/__init__.py
"""
Pydantic schemas for API responses.

- errors: Error response format
- prices: Price quotes
- holdings: Valued holdings
- valuation: Net worth and daily snapshots
"""

from asset_diary.schemas.errors import ErrorDetail
from asset_diary.schemas.holdings import HoldingResponse, HoldingsResponse
from asset_diary.schemas.prices import PriceQuoteResponse
from asset_diary.schemas.valuation import (
    DailyValueResponse,
    NetWorthHistoryResponse,
    NetWorthResponse,
)

__all__ = [
    "ErrorDetail",
    "HoldingResponse",
    "HoldingsResponse",
    "PriceQuoteResponse",
    "NetWorthResponse",
    "DailyValueResponse",
    "NetWorthHistoryResponse",
]
