# backend/asset_diary/services/market_data/cache_store.py
"""
Backing stores for the price cache.

Both stores satisfy the PriceCacheStore protocol. They only keep entries;
freshness is decided by CachingPriceSource, which compares expires_at with
its own clock.

- InMemoryPriceCacheStore: per-process dict guarded by a lock
- SqlAlchemyPriceCacheStore: the price_cache table, shared across processes
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from asset_diary.models import PriceCache
from asset_diary.services.exceptions import PriceCacheStoreError
from asset_diary.services.market_data.base import PriceQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedPriceQuote:
    quote: PriceQuote
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InMemoryPriceCacheStore:
    def __init__(self) -> None:
        self._entries: dict[str, CachedPriceQuote] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CachedPriceQuote | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, entry: CachedPriceQuote) -> None:
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SqlAlchemyPriceCacheStore:
    """
    price_cache table store.

    Each operation opens its own short-lived session so the store can be
    shared by request threads and the background sweeper. Writes are
    last-write-wins upserts keyed by cache_key.

    Raises:
        PriceCacheStoreError: Any database failure, with the operation name
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> CachedPriceQuote | None:
        try:
            with self._session_factory() as db:
                row = db.get(PriceCache, key)
                if row is None:
                    return None
                return self._to_entry(row)
        except SQLAlchemyError as e:
            raise PriceCacheStoreError("get", str(e)) from e

    def set(self, key: str, entry: CachedPriceQuote) -> None:
        try:
            with self._session_factory() as db:
                try:
                    self._merge(db, key, entry)
                except IntegrityError:
                    # Lost an insert race to another writer; the row exists now
                    db.rollback()
                    self._merge(db, key, entry)
        except SQLAlchemyError as e:
            raise PriceCacheStoreError("set", str(e)) from e

    def delete(self, key: str) -> None:
        try:
            with self._session_factory() as db:
                db.execute(delete(PriceCache).where(PriceCache.cache_key == key))
                db.commit()
        except SQLAlchemyError as e:
            raise PriceCacheStoreError("delete", str(e)) from e

    def delete_expired(self, now: datetime) -> int:
        try:
            with self._session_factory() as db:
                result = db.execute(delete(PriceCache).where(PriceCache.expires_at <= now))
                db.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise PriceCacheStoreError("delete_expired", str(e)) from e

    @staticmethod
    def _merge(db: Session, key: str, entry: CachedPriceQuote) -> None:
        quote = entry.quote
        db.merge(PriceCache(
            cache_key=key,
            asset_class=quote.asset_class,
            symbol=quote.symbol,
            name=quote.name,
            price=quote.price,
            currency=quote.currency,
            observed_at=quote.observed_at,
            expires_at=entry.expires_at,
            updated_at=datetime.now(timezone.utc),
        ))
        db.commit()

    @staticmethod
    def _to_entry(row: PriceCache) -> CachedPriceQuote:
        return CachedPriceQuote(
            quote=PriceQuote(
                asset_class=row.asset_class,
                symbol=row.symbol,
                name=row.name,
                price=row.price,
                currency=row.currency,
                observed_at=_as_utc(row.observed_at),
            ),
            expires_at=_as_utc(row.expires_at),
        )
