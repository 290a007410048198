# backend/asset_diary/services/market_data/yahoo.py
"""
Yahoo Finance price provider implementation.

The deterministic market-data source: quotes come straight from the
exchange feeds Yahoo aggregates, via the yfinance library.

Symbol mapping:
- US stocks: symbol as-is ("AAPL"), quoted in USD
- Taiwan stocks: numeric codes get the ".TW" suffix ("2330" -> "2330.TW"),
  quoted in TWD
- Crypto: quoted against USD ("BTC" -> "BTC-USD")
- FX pairs: "{BASE}{TARGET}=X", where 1 BASE = rate TARGET

Limitations:
- Rate limits exist but are not documented
- Quotes may be delayed 15-20 minutes for some markets
"""

import logging
import math
from decimal import Decimal
from typing import Any

import yfinance as yf

from asset_diary.models import AssetClass
from asset_diary.services.exceptions import (
    InvalidSymbolError,
    ProviderUnavailableError,
    RateLimitError,
)
from asset_diary.services.market_data.base import (
    PriceProvider,
    PriceQuote,
    is_taiwan_listing,
    market_currency,
    normalize_symbol,
)

logger = logging.getLogger(__name__)

TAIWAN_SUFFIX = ".TW"
CRYPTO_QUOTE_CURRENCY = "USD"

# Yahoo reports prices under different keys depending on the quote type
_PRICE_KEYS = ("regularMarketPrice", "currentPrice", "previousClose")


class YahooPriceProvider(PriceProvider):
    """
    Yahoo Finance implementation of PriceProvider.

    Retry Behavior (inherited from PriceProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on InvalidSymbolError
        - Exponential backoff, 3 attempts by default

    Example:
        provider = YahooPriceProvider()
        quote = provider.get_stock_price("2330")
        print(quote.price, quote.currency)  # 1005.0 TWD
    """

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # PRICE LOOKUPS
    # =========================================================================

    def _fetch_stock_price(self, symbol: str) -> PriceQuote:
        if is_taiwan_listing(symbol):
            yahoo_symbol = f"{symbol}{TAIWAN_SUFFIX}"
        else:
            yahoo_symbol = symbol
        info = self._fetch_info(yahoo_symbol, AssetClass.STOCK, symbol)

        return self._build_quote(
            info,
            asset_class=AssetClass.STOCK,
            symbol=symbol,
            default_currency=market_currency(symbol),
        )

    def _fetch_crypto_price(self, symbol: str) -> PriceQuote:
        yahoo_symbol = f"{symbol}-{CRYPTO_QUOTE_CURRENCY}"
        info = self._fetch_info(yahoo_symbol, AssetClass.CRYPTO, symbol)

        return self._build_quote(
            info,
            asset_class=AssetClass.CRYPTO,
            symbol=symbol,
            default_currency=CRYPTO_QUOTE_CURRENCY,
        )

    # =========================================================================
    # FX RATES
    # =========================================================================

    def get_fx_rate(self, base_currency: str, target_currency: str) -> Decimal:
        """
        Fetch the latest rate where 1 base_currency = rate target_currency.

        Raises:
            InvalidSymbolError: Yahoo does not quote this pair
            ProviderUnavailableError: Yahoo failed after retries
        """
        symbol = self.build_fx_symbol(base_currency, target_currency)
        info = self._execute_with_retry(self._fetch_info, symbol, "fx", symbol)

        rate = self._extract_price(info)
        if rate is None or rate <= 0:
            raise InvalidSymbolError("fx", symbol, self.name)
        return rate

    @staticmethod
    def build_fx_symbol(base_currency: str, target_currency: str) -> str:
        return f"{normalize_symbol(base_currency)}{normalize_symbol(target_currency)}=X"

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _fetch_info(self, yahoo_symbol: str, asset_class: AssetClass | str, symbol: str) -> dict:
        """
        Fetch the raw info dict and classify failures.

        Yahoo returns an info dict even for unknown symbols; it simply lacks
        any price, which is treated as an invalid symbol.
        """
        logger.debug(f"Fetching Yahoo info for {yahoo_symbol}")

        try:
            info = yf.Ticker(yahoo_symbol).info
        except Exception as e:
            error_str = str(e).lower()
            if "rate limit" in error_str or "too many requests" in error_str:
                raise RateLimitError(provider=self.name)
            if "not found" in error_str or "no data" in error_str or "404" in error_str:
                raise InvalidSymbolError(asset_class, symbol, self.name)

            logger.error(f"Yahoo Finance error for {yahoo_symbol}: {e}")
            raise ProviderUnavailableError(provider=self.name, reason=str(e))

        if not info or self._extract_price(info) is None:
            raise InvalidSymbolError(asset_class, symbol, self.name)

        return info

    def _build_quote(
            self,
            info: dict,
            asset_class: AssetClass,
            symbol: str,
            default_currency: str,
    ) -> PriceQuote:
        price = self._extract_price(info)
        currency = (info.get("currency") or default_currency).upper()
        name = info.get("longName") or info.get("shortName")

        return PriceQuote(
            asset_class=asset_class,
            symbol=symbol,
            name=name,
            price=price,
            currency=currency,
        )

    @classmethod
    def _extract_price(cls, info: dict) -> Decimal | None:
        for key in _PRICE_KEYS:
            price = cls._to_decimal(info.get(key))
            if price is not None:
                return price
        return None

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None/non-numeric."""
        if value is None or isinstance(value, bool):
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(Decimal("0.00000001"))
        except (TypeError, ValueError):
            return None
