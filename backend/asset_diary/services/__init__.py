# backend/asset_diary/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions as parameters (not via Depends)
- Receive collaborators through their constructors

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants
    ├── protocols.py         # Service interfaces (Protocol classes)
    ├── circuit_breaker.py   # Circuit breaker for live providers
    ├── fx_rate_service.py   # Stored exchange rates (+ sync job)
    ├── market_data/         # Price providers, fallback, cache
    ├── holdings/            # FIFO lot matching and holding valuation
    └── valuation/           # Net worth and daily snapshots
"""

from asset_diary.services.exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    UserNotFoundError,
    MarketDataError,
    PriceUnavailableError,
    InvalidSymbolError,
    ProviderUnavailableError,
    RateLimitError,
    PriceCacheStoreError,
    HoldingsError,
    InsufficientHoldingError,
    InvalidTradeError,
    FXRateError,
    FXProviderError,
    CircuitBreakerOpen,
)
from asset_diary.services.fx_rate_service import ExchangeRateService, FXSyncResult
from asset_diary.services.holdings import HoldingsService
from asset_diary.services.valuation import ValuationService

__all__ = [
    "ExchangeRateService",
    "FXSyncResult",
    "HoldingsService",
    "ValuationService",
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "UserNotFoundError",
    "MarketDataError",
    "PriceUnavailableError",
    "InvalidSymbolError",
    "ProviderUnavailableError",
    "RateLimitError",
    "PriceCacheStoreError",
    "HoldingsError",
    "InsufficientHoldingError",
    "InvalidTradeError",
    "FXRateError",
    "FXProviderError",
    "CircuitBreakerOpen",
]
