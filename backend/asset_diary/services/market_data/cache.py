# backend/asset_diary/services/market_data/cache.py
"""
Time-boxed read-through cache in front of a PriceSource.

Lookup rules:
- Fresh entry (now < expires_at): returned, upstream not called
- Expired entry: deleted, then treated as a miss
- Miss: upstream called; a quote is written back with expires_at = now + ttl
- Upstream failure: propagated, nothing cached

The backing store is advisory. PriceCacheStoreError on read is a miss and on
write is dropped; the caller still gets the upstream quote.

PriceCacheSweeper removes expired entries on a fixed interval so entries
for symbols nobody asks about again do not accumulate.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from asset_diary.models import AssetClass
from asset_diary.services.constants import DEFAULT_PRICE_CACHE_TTL, DEFAULT_SWEEP_INTERVAL_SECONDS
from asset_diary.services.exceptions import PriceCacheStoreError
from asset_diary.services.market_data.base import PriceQuote, coerce_asset_class, normalize_symbol
from asset_diary.services.market_data.cache_store import CachedPriceQuote
from asset_diary.services.protocols import PriceCacheStore, PriceSource

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_cache_key(asset_class: AssetClass, symbol: str) -> str:
    """Cache key, e.g. "stock_AAPL" or "crypto_BTC"."""
    return f"{asset_class.value}_{normalize_symbol(symbol)}"


class CachingPriceSource:
    """
    PriceSource decorator adding a TTL cache.

    Args:
        source: Upstream source (usually a FallbackPriceSource)
        store: Where entries live
        ttl: Lifetime of a cached quote
        clock: Returns the current UTC time; tests pass a controllable one
    """

    def __init__(
            self,
            source: PriceSource,
            store: PriceCacheStore,
            ttl: timedelta = DEFAULT_PRICE_CACHE_TTL,
            clock: Clock = utc_now,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._source = source
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @property
    def store(self) -> PriceCacheStore:
        return self._store

    def get_price(self, asset_class: AssetClass | str, symbol: str) -> PriceQuote:
        asset_class = coerce_asset_class(asset_class)
        key = build_cache_key(asset_class, symbol)

        cached = self._read(key)
        if cached is not None:
            return cached

        quote = self._source.get_price(asset_class, symbol)
        self._write(key, quote)
        return quote

    def _read(self, key: str) -> PriceQuote | None:
        try:
            entry = self._store.get(key)
        except PriceCacheStoreError as e:
            logger.warning(f"Price cache read failed for {key}, treating as miss: {e}")
            return None

        if entry is None:
            logger.debug(f"Price cache miss: {key}")
            return None

        if entry.is_expired(self._clock()):
            logger.debug(f"Price cache entry expired: {key}")
            try:
                self._store.delete(key)
            except PriceCacheStoreError as e:
                logger.warning(f"Failed to delete expired cache entry {key}: {e}")
            return None

        logger.debug(f"Price cache hit: {key}")
        return entry.quote

    def _write(self, key: str, quote: PriceQuote) -> None:
        entry = CachedPriceQuote(quote=quote, expires_at=self._clock() + self._ttl)
        try:
            self._store.set(key, entry)
        except PriceCacheStoreError as e:
            logger.warning(f"Price cache write failed for {key}: {e}")


class PriceCacheSweeper:
    """
    Daemon thread deleting expired cache entries every `interval_seconds`.

    Started once by the application lifespan and stopped at shutdown. The
    first sweep happens one interval after start.
    """

    def __init__(
            self,
            store: PriceCacheStore,
            interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
            clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="price-cache-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Price cache sweeper started (interval={self._interval}s)")

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Price cache sweeper stopped")

    def sweep_once(self) -> int:
        """Delete expired entries now. Returns how many were removed (0 on store failure)."""
        try:
            removed = self._store.delete_expired(self._clock())
        except PriceCacheStoreError as e:
            logger.error(f"Price cache sweep failed: {e}")
            return 0

        if removed:
            logger.info(f"Price cache sweep removed {removed} expired entries")
        return removed

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.sweep_once()
