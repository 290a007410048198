#!/usr/bin/env python3
# backend/scripts/seed_sample_data.py
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

# Setup path to import asset_diary modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select

from asset_diary.database import SessionLocal, create_tables
from asset_diary.models import Account, AssetClass, ExchangeRate, Trade, TradeType, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed():
    create_tables()
    db = SessionLocal()
    try:
        logger.info("Starting database seeding...")

        # 1. Demo user, valued in USD
        user = db.scalar(select(User).where(User.email == "demo@example.com"))
        if not user:
            user = User(email="demo@example.com", default_currency="USD")
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info(f"Created user: {user.email}")
        else:
            logger.info(f"User exists: {user.email}")

        # 2. Cash accounts in two currencies
        if not db.scalar(select(Account).where(Account.user_id == user.id)):
            db.add_all([
                Account(user_id=user.id, name="Checking", currency="USD", balance=Decimal("2500.00")),
                Account(user_id=user.id, name="Taipei Savings", currency="TWD", balance=Decimal("120000")),
            ])
            db.commit()
            logger.info("Created sample accounts")

        # 3. Trades: a US stock with a partial sell, a Taiwan listing, and crypto
        if not db.scalar(select(Trade).where(Trade.user_id == user.id)):
            trades = [
                (TradeType.BUY, AssetClass.STOCK, "AAPL", "Apple Inc.", "10", "150.00", "USD", datetime(2024, 1, 15)),
                (TradeType.BUY, AssetClass.STOCK, "AAPL", "Apple Inc.", "5", "180.00", "USD", datetime(2024, 3, 1)),
                (TradeType.SELL, AssetClass.STOCK, "AAPL", "Apple Inc.", "8", "190.00", "USD", datetime(2024, 6, 3)),
                (TradeType.BUY, AssetClass.STOCK, "2330", "TSMC", "100", "580", "TWD", datetime(2024, 2, 5)),
                (TradeType.BUY, AssetClass.CRYPTO, "BTC", "Bitcoin", "0.05", "42000", "USD", datetime(2024, 1, 20)),
            ]
            db.add_all([
                Trade(
                    user_id=user.id,
                    trade_type=trade_type,
                    asset_class=asset_class,
                    ticker=ticker,
                    ticker_name=name,
                    quantity=Decimal(quantity),
                    price=Decimal(price),
                    currency=currency,
                    trade_date=trade_date,
                )
                for trade_type, asset_class, ticker, name, quantity, price, currency, trade_date in trades
            ])
            db.commit()
            logger.info(f"Created {len(trades)} sample trades")

        # 4. A static USD/TWD rate so valuation works without a sync run
        #    1 USD = 32 TWD; TWD amounts are divided by this rate
        if not db.scalar(select(ExchangeRate).where(
            ExchangeRate.base_currency == "USD",
            ExchangeRate.target_currency == "TWD",
        )):
            db.add(ExchangeRate(
                base_currency="USD",
                target_currency="TWD",
                rate=Decimal("32.0"),
                provider="seed",
                last_updated=datetime.now(timezone.utc),
            ))
            db.commit()
            logger.info("Created exchange rate USD/TWD")

        logger.info("Seeding complete")

    except Exception as e:
        logger.error(f"Seeding failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
