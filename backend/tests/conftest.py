# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Fake price source and clock
- Sample data factories
- API test client with service overrides
"""

import os

# Set required environment variables BEFORE importing asset_diary modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from asset_diary.database import get_db
from asset_diary.dependencies import (
    get_holdings_service,
    get_price_source,
    get_valuation_service,
)
from asset_diary.main import app
from asset_diary.models import (
    Account,
    AssetClass,
    Base,
    ExchangeRate,
    Trade,
    TradeType,
    User,
)
from asset_diary.services.exceptions import InvalidSymbolError
from asset_diary.services.fx_rate_service import ExchangeRateService
from asset_diary.services.holdings import HoldingsService
from asset_diary.services.holdings.types import TradeRecord
from asset_diary.services.market_data import CachingPriceSource, InMemoryPriceCacheStore
from asset_diary.services.market_data.base import PriceQuote, normalize_symbol
from asset_diary.services.valuation import ValuationService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# FAKE PRICE SOURCE
# =============================================================================

class FakePriceSource:
    """
    In-memory PriceSource for testing.

    Prices and errors are configured per (asset_class, symbol); unknown
    symbols raise InvalidSymbolError. Calls are recorded (thread-safe) so
    tests can assert on upstream traffic.
    """

    def __init__(self, name: str = "fake"):
        self.name = name
        self._prices: dict[tuple[AssetClass, str], PriceQuote] = {}
        self._errors: dict[tuple[AssetClass, str], Exception] = {}
        self._lock = threading.Lock()
        self.calls: list[tuple[AssetClass, str]] = []

    def set_price(
            self,
            asset_class: AssetClass,
            symbol: str,
            price: str | Decimal,
            currency: str = "USD",
            name: str | None = None,
    ) -> None:
        symbol = normalize_symbol(symbol)
        self._prices[(asset_class, symbol)] = PriceQuote(
            asset_class=asset_class,
            symbol=symbol,
            name=name,
            price=Decimal(str(price)),
            currency=currency,
        )

    def set_error(self, asset_class: AssetClass, symbol: str, error: Exception) -> None:
        self._errors[(asset_class, normalize_symbol(symbol))] = error

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def get_price(self, asset_class: AssetClass, symbol: str) -> PriceQuote:
        key = (AssetClass(asset_class), normalize_symbol(symbol))
        with self._lock:
            self.calls.append(key)

        if key in self._errors:
            raise self._errors[key]
        if key not in self._prices:
            raise InvalidSymbolError(key[0], key[1], self.name)
        return self._prices[key]


@pytest.fixture
def price_source() -> FakePriceSource:
    return FakePriceSource()


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def make_trade(
        trade_type: TradeType | str,
        ticker: str,
        quantity: str | Decimal,
        price: str | Decimal,
        currency: str = "USD",
        asset_class: AssetClass | str = AssetClass.STOCK,
        day: int = 1,
        ticker_name: str | None = None,
        trade_id: int | None = None,
) -> TradeRecord:
    """Build a TradeRecord dated 2024-01-<day>."""
    return TradeRecord(
        trade_type=trade_type,
        asset_class=asset_class,
        ticker=ticker,
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
        currency=currency,
        trade_date=datetime(2024, 1, day),
        ticker_name=ticker_name,
        id=trade_id,
    )


def create_user(
        db: Session,
        email: str = "test@example.com",
        default_currency: str | None = "USD",
) -> User:
    user = User(email=email, default_currency=default_currency)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_trade(
        db: Session,
        user: User,
        trade_type: TradeType,
        ticker: str,
        quantity: str,
        price: str,
        currency: str = "USD",
        asset_class: AssetClass = AssetClass.STOCK,
        day: int = 1,
        ticker_name: str | None = None,
) -> Trade:
    trade = Trade(
        user_id=user.id,
        trade_type=trade_type,
        asset_class=asset_class,
        ticker=ticker,
        ticker_name=ticker_name,
        quantity=Decimal(quantity),
        price=Decimal(price),
        currency=currency,
        trade_date=datetime(2024, 1, day),
    )
    db.add(trade)
    db.commit()
    db.refresh(trade)
    return trade


def create_account(
        db: Session,
        user: User,
        name: str,
        currency: str,
        balance: str,
) -> Account:
    account = Account(user_id=user.id, name=name, currency=currency, balance=Decimal(balance))
    db.add(account)
    db.commit()
    db.refresh(account)
    return account


def create_rate(db: Session, base: str, target: str, rate: str) -> ExchangeRate:
    row = ExchangeRate(base_currency=base, target_currency=target, rate=Decimal(rate))
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def sample_user(db: Session) -> User:
    return create_user(db)


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session, price_source: FakePriceSource) -> Iterator[TestClient]:
    """
    Create TestClient with database and service overrides.

    The real application (lifespan included) runs; only the session and the
    services behind the routers are replaced so no request leaves the process.
    """
    cached_source = CachingPriceSource(price_source, InMemoryPriceCacheStore())
    fx_service = ExchangeRateService()
    holdings_service = HoldingsService(price_source=cached_source, fx_service=fx_service)
    valuation_service = ValuationService(holdings_service, fx_service)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_price_source] = lambda: cached_source
    app.dependency_overrides[get_holdings_service] = lambda: holdings_service
    app.dependency_overrides[get_valuation_service] = lambda: valuation_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
