# backend/asset_diary/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradeType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class AssetClass(str, enum.Enum):
    STOCK = "stock"
    CRYPTO = "crypto"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    # Display currency for net worth; NULL falls back to DEFAULT_DISPLAY_CURRENCY
    default_currency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    accounts: Mapped[list["Account"]] = relationship(back_populates="owner", cascade="all, delete-orphan")
    trades: Mapped[list["Trade"]] = relationship(back_populates="owner", cascade="all, delete-orphan")


class Account(Base):
    """Cash account; its balance counts toward net worth in its own currency."""
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    name: Mapped[str] = mapped_column(String)
    currency: Mapped[str] = mapped_column(String(10))
    balance: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal(0))

    owner: Mapped["User"] = relationship(back_populates="accounts")
    trades: Mapped[list["Trade"]] = relationship(back_populates="account")


class Trade(Base):
    """
    One buy or sell in the user's ledger.

    Holdings are never stored; they are recomputed from these rows by FIFO
    lot matching on every read.
    """
    __tablename__ = "trades"
    __table_args__ = (
        Index('ix_trade_user_asset', 'user_id', 'asset_class', 'ticker', 'currency'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id"), nullable=True, index=True)
    trade_type: Mapped[TradeType] = mapped_column(Enum(TradeType))
    asset_class: Mapped[AssetClass] = mapped_column(Enum(AssetClass))
    ticker: Mapped[str] = mapped_column(String, index=True)
    ticker_name: Mapped[str | None] = mapped_column(String, nullable=True)

    # Numeric(18, 8) keeps crypto fractions exact
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    currency: Mapped[str] = mapped_column(String(10))

    trade_date: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    owner: Mapped["User"] = relationship(back_populates="trades")
    account: Mapped["Account | None"] = relationship(back_populates="trades")


class ExchangeRate(Base):
    """
    Latest exchange rate per currency pair.

    Convention: 1 base_currency = rate target_currency.
    Example: base=USD, target=TWD, rate=32.5 means 1 USD = 32.5 TWD, so an
    amount held in TWD converts to USD as amount / 32.5.
    """
    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint('base_currency', 'target_currency', name='uq_exchange_rate_pair'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    base_currency: Mapped[str] = mapped_column(String(10), index=True)
    target_currency: Mapped[str] = mapped_column(String(10))
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    provider: Mapped[str] = mapped_column(String(50), default="yahoo")
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class PriceCache(Base):
    """
    Database-backed price cache entry, keyed "<asset_class>_<SYMBOL>".

    Used when PRICE_CACHE_BACKEND=database so several API processes share
    one cache.
    """
    __tablename__ = "price_cache"

    cache_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    asset_class: Mapped[AssetClass] = mapped_column(Enum(AssetClass))
    symbol: Mapped[str] = mapped_column(String(32))
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    currency: Mapped[str] = mapped_column(String(10))
    observed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class UserDailyTotalAssetValue(Base):
    """Once-a-day net-worth snapshot, one row per user and date."""
    __tablename__ = "user_daily_total_asset_values"
    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='uq_user_daily_value'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    total_value: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    currency: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
