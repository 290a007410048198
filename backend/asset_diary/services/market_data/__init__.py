# backend/asset_diary/services/market_data/__init__.py
"""
Market data services package.

Architecture:
    PriceProvider (ABC)
    ├── YahooPriceProvider    (deterministic feed, yfinance)
    └── GeminiPriceProvider   (generative best-effort, httpx)

    FallbackPriceSource(primary, secondary)
    CachingPriceSource(source, store, ttl)
    ├── InMemoryPriceCacheStore
    └── SqlAlchemyPriceCacheStore
    PriceCacheSweeper (background expiry)

Typical chain:
    CachingPriceSource(FallbackPriceSource(Yahoo, Gemini), store)
"""

from asset_diary.services.market_data.base import PriceProvider, PriceQuote
from asset_diary.services.market_data.cache import (
    CachingPriceSource,
    PriceCacheSweeper,
    build_cache_key,
)
from asset_diary.services.market_data.cache_store import (
    CachedPriceQuote,
    InMemoryPriceCacheStore,
    SqlAlchemyPriceCacheStore,
)
from asset_diary.services.market_data.fallback import FallbackPriceSource
from asset_diary.services.market_data.gemini import GeminiPriceProvider
from asset_diary.services.market_data.yahoo import YahooPriceProvider

__all__ = [
    "PriceProvider",
    "PriceQuote",
    "YahooPriceProvider",
    "GeminiPriceProvider",
    "FallbackPriceSource",
    "CachingPriceSource",
    "PriceCacheSweeper",
    "build_cache_key",
    "CachedPriceQuote",
    "InMemoryPriceCacheStore",
    "SqlAlchemyPriceCacheStore",
]
