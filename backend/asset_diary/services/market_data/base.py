# backend/asset_diary/services/market_data/base.py
"""
Abstract interface for live price providers.

Every provider answers one question: "what is the current price of this
symbol?" The base class owns everything that is not provider specific:

- symbol normalization (trimmed, upper-cased)
- dispatch on asset class (stock vs crypto)
- retry with exponential backoff for transient failures
- an optional circuit breaker shared by all calls to the provider

Subclasses implement `_fetch_stock_price` and `_fetch_crypto_price` and
raise InvalidSymbolError / ProviderUnavailableError / RateLimitError.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from asset_diary.models import AssetClass
from asset_diary.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from asset_diary.services.constants import PRICE_PRECISION
from asset_diary.services.exceptions import (
    InvalidSymbolError,
    ProviderUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Listings on the Taiwan exchanges use numeric codes (e.g. "2330")
TAIWAN_CURRENCY = "TWD"
US_CURRENCY = "USD"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class PriceQuote:
    """
    A single price observation.

    Attributes:
        asset_class: stock or crypto
        symbol: Normalized symbol as requested (e.g., "AAPL", "2330", "BTC")
        name: Display name when the provider knows it
        price: Last traded / quoted price
        currency: Currency the price is denominated in
        observed_at: When the price was obtained from the provider

    Prices are quantized to PRICE_PRECISION on construction so a quote reads
    back identically from every cache store.
    """

    asset_class: AssetClass
    symbol: str
    name: str | None
    price: Decimal
    currency: str
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not self.symbol:
            raise ValueError("symbol is required")
        if not self.currency:
            raise ValueError("currency is required")
        price = Decimal(str(self.price)).quantize(PRICE_PRECISION)
        if price < 0:
            raise ValueError(f"price cannot be negative, got {self.price}")
        object.__setattr__(self, "price", price)


# =============================================================================
# HELPERS
# =============================================================================

def normalize_symbol(symbol: str) -> str:
    return (symbol or "").strip().upper()


def coerce_asset_class(asset_class: AssetClass | str) -> AssetClass:
    """Accept enum members or their string values ("stock", "crypto")."""
    if isinstance(asset_class, AssetClass):
        return asset_class
    try:
        return AssetClass(str(asset_class).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unsupported asset class: '{asset_class}'. Valid options: stock, crypto",
            field="asset_class",
        )


def is_taiwan_listing(symbol: str) -> bool:
    return bool(symbol) and symbol[0].isdigit()


def market_currency(symbol: str) -> str:
    """Currency a stock symbol is expected to trade in."""
    return TAIWAN_CURRENCY if is_taiwan_listing(symbol) else US_CURRENCY


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class PriceProvider(ABC):
    """
    Abstract base class for live price providers.

    Retry Behavior:
        Each lookup runs through `_execute_with_retry`, which retries
        ProviderUnavailableError (and its subclass RateLimitError) with
        exponential backoff. InvalidSymbolError is never retried.

        Defaults come from the class attributes below; constructor keyword
        arguments override them per instance.

    Circuit Breaker:
        When a breaker is supplied, the whole retry sequence runs inside it.
        An open breaker surfaces as ProviderUnavailableError so a fallback
        source can take over.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    def __init__(
            self,
            circuit_breaker: CircuitBreaker | None = None,
            max_retry_attempts: int | None = None,
            retry_min_wait: float | None = None,
            retry_max_wait: float | None = None,
    ) -> None:
        self._breaker = circuit_breaker
        self._max_retry_attempts = max_retry_attempts or self.MAX_RETRY_ATTEMPTS
        self._retry_min_wait = self.RETRY_MIN_WAIT if retry_min_wait is None else retry_min_wait
        self._retry_max_wait = self.RETRY_MAX_WAIT if retry_max_wait is None else retry_max_wait

    @property
    def circuit_breaker(self) -> CircuitBreaker | None:
        return self._breaker

    # =========================================================================
    # ABSTRACT PROPERTIES AND METHODS
    # =========================================================================

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and error messages."""
        pass

    @abstractmethod
    def _fetch_stock_price(self, symbol: str) -> PriceQuote:
        """
        Fetch the current price of a stock listing.

        Args:
            symbol: Normalized symbol; a leading digit marks a Taiwan listing

        Raises:
            InvalidSymbolError: Provider says the symbol does not exist
            ProviderUnavailableError: Network, API or parsing failure (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    @abstractmethod
    def _fetch_crypto_price(self, symbol: str) -> PriceQuote:
        """
        Fetch the current price of a crypto asset.

        Args:
            symbol: Normalized base symbol (e.g., "BTC")

        Raises:
            InvalidSymbolError: Provider says the symbol does not exist
            ProviderUnavailableError: Network, API or parsing failure (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_price(self, asset_class: AssetClass | str, symbol: str) -> PriceQuote:
        """
        Look up the current price of a symbol.

        Args:
            asset_class: AssetClass.STOCK or AssetClass.CRYPTO (or their values)
            symbol: Ticker symbol, any case, surrounding whitespace ignored

        Returns:
            PriceQuote from this provider

        Raises:
            ValidationError: Unsupported asset class
            InvalidSymbolError: Empty or unknown symbol
            ProviderUnavailableError: Provider failed after retries or breaker open
        """
        asset_class = coerce_asset_class(asset_class)
        normalized = normalize_symbol(symbol)
        if not normalized:
            raise InvalidSymbolError(asset_class, symbol, self.name)

        if asset_class == AssetClass.STOCK:
            fetch = self._fetch_stock_price
        else:
            fetch = self._fetch_crypto_price

        logger.debug(f"Fetching {asset_class.value} price for {normalized} from {self.name}")

        if self._breaker is None:
            return self._execute_with_retry(fetch, normalized)

        try:
            with self._breaker:
                return self._execute_with_retry(fetch, normalized)
        except CircuitBreakerOpen as e:
            raise ProviderUnavailableError(self.name, str(e)) from e

    def get_stock_price(self, symbol: str) -> PriceQuote:
        return self.get_price(AssetClass.STOCK, symbol)

    def get_crypto_price(self, symbol: str) -> PriceQuote:
        return self.get_price(AssetClass.CRYPTO, symbol)

    def close(self) -> None:
        """Release provider resources (HTTP clients). No-op by default."""
        return None

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Retries ProviderUnavailableError (including RateLimitError) with
        exponential backoff; anything else propagates on the first attempt.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self._max_retry_attempts),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self._retry_min_wait,
                max=self._retry_max_wait,
            ),
            retry=retry_if_exception_type(ProviderUnavailableError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
