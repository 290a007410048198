# backend/asset_diary/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── NotFoundError
    │   └── UserNotFoundError
    ├── MarketDataError
    │   └── PriceUnavailableError
    │       ├── InvalidSymbolError          (authoritative: never retried, never falls back)
    │       └── ProviderUnavailableError    (transient: retried, then falls back)
    │           └── RateLimitError
    ├── PriceCacheStoreError
    ├── HoldingsError
    │   ├── InsufficientHoldingError        (ledger integrity: aborts aggregation)
    │   └── InvalidTradeError
    └── FXRateError
        └── FXProviderError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests
"""

from decimal import Decimal
from enum import Enum


def _label(value: object) -> str:
    """Render enums by value so messages read 'stock', not 'AssetClass.STOCK'."""
    return str(value.value) if isinstance(value, Enum) else str(value)


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a service receives parameters it cannot act on.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "User")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(
            f"User {user_id} not found",
            resource_type="User",
            resource_id=user_id,
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data failures.

    Attributes:
        provider: Name of the provider that failed (None when not provider-specific)
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class PriceUnavailableError(MarketDataError):
    """
    A price could not be produced for a symbol.

    Callers that only need "price or not" catch this; callers that need to
    tell a bad symbol from a flaky provider catch the subclasses.
    """
    pass


class InvalidSymbolError(PriceUnavailableError):
    """
    Raised when a provider authoritatively says the symbol does not exist.

    This is NOT a retryable error and must not trigger a fallback provider:
    a second opinion on a definitively unknown symbol is wasted work.
    """

    def __init__(self, asset_class: object, symbol: str, provider: str | None = None) -> None:
        self.asset_class = _label(asset_class)
        self.symbol = symbol
        message = f"Invalid {self.asset_class} symbol '{symbol}'"
        if provider:
            message += f" (reported by {provider})"
        super().__init__(message, provider=provider)


class ProviderUnavailableError(PriceUnavailableError):
    """
    Raised when a provider is temporarily unable to answer.

    Examples:
    - Network timeout or connection error
    - Server errors (500, 502, 503)
    - Malformed or unparseable response
    - Circuit breaker open

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class RateLimitError(ProviderUnavailableError):
    """
    Raised when the provider's rate limit has been exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        reason = "rate limit exceeded"
        if retry_after:
            reason += f" (retry after {retry_after}s)"
        super().__init__(provider, reason)
        self.retry_after = retry_after


class PriceCacheStoreError(ServiceError):
    """
    Raised by a price cache store when its backing storage fails.

    The caching layer treats this as a miss; it never fails a price lookup.
    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Price cache {operation} failed: {reason}")


# =============================================================================
# HOLDINGS ERRORS
# =============================================================================


class HoldingsError(ServiceError):
    """Base exception for ledger integrity failures during lot matching."""
    pass


class InsufficientHoldingError(HoldingsError):
    """
    Raised when a sell exceeds the quantity held for its holding key.

    Fatal to the whole aggregation: holdings computed from a corrupt ledger
    would silently misstate every downstream value.

    Attributes:
        holding_key: "<asset_class>/<ticker>/<currency>" of the offending group
        requested: Quantity the sell tried to remove
        available: Quantity held at that point in the ledger
        shortfall: requested - available
    """

    def __init__(self, holding_key: str, requested: Decimal, available: Decimal) -> None:
        self.holding_key = holding_key
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Cannot sell {requested} of {holding_key}: only {available} held "
            f"(short by {self.shortfall})"
        )


class InvalidTradeError(HoldingsError):
    """
    Raised for a trade that can never be matched (non-positive quantity,
    unknown trade type).

    Attributes:
        trade_id: ID of the offending trade, when known
    """

    def __init__(self, message: str, trade_id: int | None = None) -> None:
        self.trade_id = trade_id
        super().__init__(message)


# =============================================================================
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for FX rate errors.

    Attributes:
        base_currency: The base currency code
        target_currency: The target currency code
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            target_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.target_currency = target_currency
        super().__init__(message)


class FXProviderError(FXRateError):
    """
    Raised when the FX data provider fails.

    Attributes:
        provider: Name of the FX data provider
        reason: Specific reason for failure
    """

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"FX provider '{provider}' error: {reason}")


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from asset_diary.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "UserNotFoundError",
    "MarketDataError",
    "PriceUnavailableError",
    "InvalidSymbolError",
    "ProviderUnavailableError",
    "RateLimitError",
    "PriceCacheStoreError",
    "HoldingsError",
    "InsufficientHoldingError",
    "InvalidTradeError",
    "FXRateError",
    "FXProviderError",
    "CircuitBreakerOpen",
]
