# backend/tests/services/test_cache_stores.py
"""
Tests for the price cache backing stores.

Both stores are exercised through the same contract; the SQLAlchemy store
additionally has to survive a round trip through SQLite (which drops
tzinfo) and report database failures as PriceCacheStoreError.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from asset_diary.models import AssetClass, PriceCache
from asset_diary.services.exceptions import PriceCacheStoreError
from asset_diary.services.market_data import (
    CachedPriceQuote,
    CachingPriceSource,
    InMemoryPriceCacheStore,
    PriceQuote,
    SqlAlchemyPriceCacheStore,
)
from tests.conftest import FakePriceSource

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_entry(symbol: str = "AAPL", price: str = "190.5", expires_in_minutes: int = 20) -> CachedPriceQuote:
    return CachedPriceQuote(
        quote=PriceQuote(
            asset_class=AssetClass.STOCK,
            symbol=symbol,
            name=f"{symbol} Inc.",
            price=Decimal(price),
            currency="USD",
            observed_at=NOW,
        ),
        expires_at=NOW + timedelta(minutes=expires_in_minutes),
    )


@pytest.fixture(params=["memory", "database"])
def store(request, session_factory):
    if request.param == "memory":
        return InMemoryPriceCacheStore()
    return SqlAlchemyPriceCacheStore(session_factory)


class TestPriceCacheStoreContract:
    """Behavior shared by every store."""

    def test_get_missing_returns_none(self, store):
        assert store.get("stock_AAPL") is None

    def test_set_then_get(self, store):
        entry = make_entry()
        store.set("stock_AAPL", entry)

        loaded = store.get("stock_AAPL")

        assert loaded.quote.price == Decimal("190.5")
        assert loaded.quote.currency == "USD"
        assert loaded.quote.asset_class == AssetClass.STOCK
        assert loaded.expires_at == entry.expires_at
        assert loaded.quote.observed_at == NOW

    def test_long_price_reads_back_unchanged(self, store):
        entry = make_entry(price="189.123456789")
        store.set("stock_AAPL", entry)

        assert store.get("stock_AAPL").quote.price == entry.quote.price

    def test_set_overwrites(self, store):
        store.set("stock_AAPL", make_entry(price="1"))
        store.set("stock_AAPL", make_entry(price="2"))

        assert store.get("stock_AAPL").quote.price == Decimal("2")

    def test_delete(self, store):
        store.set("stock_AAPL", make_entry())
        store.delete("stock_AAPL")
        store.delete("stock_MISSING")

        assert store.get("stock_AAPL") is None

    def test_delete_expired(self, store):
        store.set("stock_OLD", make_entry("OLD", expires_in_minutes=-1))
        store.set("stock_EDGE", make_entry("EDGE", expires_in_minutes=0))
        store.set("stock_NEW", make_entry("NEW", expires_in_minutes=5))

        removed = store.delete_expired(NOW)

        assert removed == 2
        assert store.get("stock_OLD") is None
        assert store.get("stock_EDGE") is None
        assert store.get("stock_NEW") is not None


class TestSqlAlchemyPriceCacheStore:
    """Database-specific behavior."""

    def test_timestamps_come_back_as_utc(self, session_factory):
        store = SqlAlchemyPriceCacheStore(session_factory)
        store.set("stock_AAPL", make_entry())

        loaded = store.get("stock_AAPL")

        assert loaded.expires_at.tzinfo is not None
        assert loaded.expires_at.utcoffset() == timedelta(0)

    def test_row_written_to_price_cache_table(self, session_factory, db):
        SqlAlchemyPriceCacheStore(session_factory).set("stock_AAPL", make_entry())

        row = db.get(PriceCache, "stock_AAPL")

        assert row is not None
        assert row.symbol == "AAPL"

    def test_cached_quote_matches_first_fetch(self, session_factory, clock):
        upstream = FakePriceSource()
        upstream.set_price(AssetClass.STOCK, "AAPL", "189.123456789")
        cached = CachingPriceSource(upstream, SqlAlchemyPriceCacheStore(session_factory), clock=clock)

        first = cached.get_price(AssetClass.STOCK, "AAPL")
        second = cached.get_price(AssetClass.STOCK, "AAPL")

        assert upstream.call_count == 1
        assert first.price == second.price == Decimal("189.12345679")
        assert first.name == second.name
        assert first.currency == second.currency

    def test_database_errors_are_wrapped(self):
        session = MagicMock()
        session.__enter__.return_value = session
        session.get.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        store = SqlAlchemyPriceCacheStore(lambda: session)

        with pytest.raises(PriceCacheStoreError) as exc_info:
            store.get("stock_AAPL")

        assert exc_info.value.operation == "get"
