# backend/asset_diary/services/constants.py
"""
Business constants shared across services.

Runtime-tunable values live in config.Settings; these are the defaults the
services fall back to when constructed without settings (mostly in tests).

Usage:
    from asset_diary.services.constants import DEFAULT_PRICE_CACHE_TTL, ZERO
"""

from datetime import timedelta
from decimal import Decimal


# =============================================================================
# PRICE CACHE
# =============================================================================

# A quote older than this is refetched
DEFAULT_PRICE_CACHE_TTL: timedelta = timedelta(minutes=20)

# Background sweep of expired cache entries (1 hour)
DEFAULT_SWEEP_INTERVAL_SECONDS: float = 3600.0


# =============================================================================
# CIRCUIT BREAKER DEFAULTS (per provider)
# =============================================================================

CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
CIRCUIT_BREAKER_RECOVERY_TIMEOUT: float = 60.0


# =============================================================================
# CURRENCY
# =============================================================================

DEFAULT_DISPLAY_CURRENCY: str = "USD"


# =============================================================================
# DECIMAL PRECISION
# =============================================================================

# Money amounts in API responses
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Quantities (crypto needs 8 decimal places)
SHARE_PRECISION: Decimal = Decimal("0.00000001")

# Quoted prices; matches the price_cache.price column scale
PRICE_PRECISION: Decimal = Decimal("0.00000001")

# Percentages in API responses
PERCENTAGE_PRECISION: Decimal = Decimal("0.01")

ZERO: Decimal = Decimal("0")
HUNDRED: Decimal = Decimal("100")
