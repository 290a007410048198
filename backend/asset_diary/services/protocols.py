# backend/asset_diary/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Providers, decorators and test fakes satisfy the same contract
- Decorators (fallback, cache) compose without a shared base class
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from asset_diary.models import AssetClass
    from asset_diary.services.market_data.base import PriceQuote
    from asset_diary.services.market_data.cache_store import CachedPriceQuote


class PriceSource(Protocol):
    """
    Anything that can answer "current price of symbol S of class C".

    Implemented by concrete providers, FallbackPriceSource and
    CachingPriceSource.
    """

    def get_price(self, asset_class: AssetClass, symbol: str) -> PriceQuote:
        ...


class PriceCacheStore(Protocol):
    """Keyed storage for cached quotes. Expiry is decided by the caller."""

    def get(self, key: str) -> CachedPriceQuote | None:
        ...

    def set(self, key: str, entry: CachedPriceQuote) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def delete_expired(self, now: datetime) -> int:
        ...


class FXRateProvider(Protocol):
    """Live source of "1 base = rate target" quotes, used only by rate syncing."""

    @property
    def name(self) -> str:
        ...

    def get_fx_rate(self, base_currency: str, target_currency: str) -> Decimal:
        ...


class ExchangeRateServiceProtocol(Protocol):
    """Interface required by HoldingsService and ValuationService."""

    def rates_for(self, db: Session, base_currency: str) -> dict[str, Decimal]:
        ...
