# backend/asset_diary/routers/__init__.py
"""
API routers for Asset Diary.

Each router handles a specific domain:
- prices: Current price lookups (stock, crypto)
- holdings: FIFO-derived open positions per user
- valuation: Net worth and its daily history per user
"""

from asset_diary.routers.holdings import router as holdings_router
from asset_diary.routers.prices import router as prices_router
from asset_diary.routers.valuation import router as valuation_router

__all__ = [
    "holdings_router",
    "prices_router",
    "valuation_router",
]
