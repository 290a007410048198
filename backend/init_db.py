#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'asset_diary' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from asset_diary.config import settings
from asset_diary.database import create_tables


def init_db() -> None:
    """Create all database tables (users, trades, accounts, rates, price cache, snapshots)."""
    print(f"Creating database tables on {settings.database_url.split('@')[-1]}...")
    create_tables()
    print("Tables created successfully!")


if __name__ == "__main__":
    init_db()
