# backend/asset_diary/services/market_data/gemini.py
"""
Generative price provider backed by the Gemini REST API.

Best-effort fallback for symbols the market feeds cannot serve. The model is
asked for a strict JSON quote; anything that does not validate is treated as
a provider failure rather than a price.

Classification:
- {"error": ...} reply                          -> InvalidSymbolError
- stock quoted in a currency foreign to its market -> InvalidSymbolError
- HTTP 429                                      -> RateLimitError
- transport error, non-2xx, malformed payload   -> ProviderUnavailableError
"""

import json
import logging
from decimal import Decimal

import httpx
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from asset_diary.models import AssetClass
from asset_diary.services.circuit_breaker import CircuitBreaker
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
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"

_STOCK_PROMPT = (
    "You are a market data service. Return the latest trading price of the "
    "{market} stock with ticker symbol \"{symbol}\". Respond with JSON only, "
    "shaped as {{\"symbol\": string, \"name\": string, \"price\": number, "
    "\"currency\": string}} where currency is an ISO 4217 code. If no such "
    "listing exists respond with {{\"error\": \"invalid symbol\"}}."
)

_CRYPTO_PROMPT = (
    "You are a market data service. Return the latest price of the "
    "cryptocurrency \"{symbol}\" quoted in USD. Respond with JSON only, "
    "shaped as {{\"symbol\": string, \"name\": string, \"price\": number, "
    "\"currency\": \"USD\"}}. If no such cryptocurrency exists respond with "
    "{{\"error\": \"invalid symbol\"}}."
)


class GeminiQuotePayload(BaseModel):
    """Quote JSON as produced by the model."""

    symbol: str | None = None
    name: str | None = None
    price: Decimal = Field(ge=0)
    currency: str = Field(min_length=1)


class GeminiPriceProvider(PriceProvider):
    """
    Gemini implementation of PriceProvider.

    Args:
        api_key: Gemini API key; lookups fail as unavailable without one
        model: Model name used for generateContent
        client: Preconfigured httpx.Client (tests inject a MockTransport)
    """

    def __init__(
            self,
            api_key: str | None,
            model: str = DEFAULT_MODEL,
            base_url: str = DEFAULT_BASE_URL,
            timeout: float = 30.0,
            client: httpx.Client | None = None,
            circuit_breaker: CircuitBreaker | None = None,
            max_retry_attempts: int | None = None,
            retry_min_wait: float | None = None,
            retry_max_wait: float | None = None,
    ) -> None:
        super().__init__(
            circuit_breaker=circuit_breaker,
            max_retry_attempts=max_retry_attempts,
            retry_min_wait=retry_min_wait,
            retry_max_wait=retry_max_wait,
        )
        self._api_key = api_key
        self._model = model
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        logger.info(f"GeminiPriceProvider initialized (model={model}, configured={bool(api_key)})")

    @property
    def name(self) -> str:
        return "gemini"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # =========================================================================
    # PRICE LOOKUPS
    # =========================================================================

    def _fetch_stock_price(self, symbol: str) -> PriceQuote:
        market = "Taiwan" if is_taiwan_listing(symbol) else "US"
        payload = self._ask(AssetClass.STOCK, symbol, _STOCK_PROMPT.format(market=market, symbol=symbol))

        currency = payload.currency.strip().upper()
        expected = market_currency(symbol)
        if currency != expected:
            logger.info(
                f"Gemini quoted {symbol} in {currency}, expected {expected}; treating as invalid symbol"
            )
            raise InvalidSymbolError(AssetClass.STOCK, symbol, self.name)

        return PriceQuote(
            asset_class=AssetClass.STOCK,
            symbol=symbol,
            name=payload.name,
            price=payload.price,
            currency=currency,
        )

    def _fetch_crypto_price(self, symbol: str) -> PriceQuote:
        payload = self._ask(AssetClass.CRYPTO, symbol, _CRYPTO_PROMPT.format(symbol=symbol))

        return PriceQuote(
            asset_class=AssetClass.CRYPTO,
            symbol=symbol,
            name=payload.name,
            price=payload.price,
            currency=payload.currency.strip().upper(),
        )

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _ask(self, asset_class: AssetClass, symbol: str, prompt: str) -> GeminiQuotePayload:
        if not self._api_key:
            raise ProviderUnavailableError(self.name, "GEMINI_API_KEY is not configured")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json", "temperature": 0},
        }

        try:
            response = self._client.post(
                f"/models/{self._model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed for {symbol}: {e}")
            raise ProviderUnavailableError(self.name, str(e))

        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                provider=self.name,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if response.status_code >= 400:
            raise ProviderUnavailableError(self.name, f"HTTP {response.status_code}")

        data = self._extract_json(response)

        if "error" in data:
            raise InvalidSymbolError(asset_class, symbol, self.name)

        try:
            return GeminiQuotePayload.model_validate(data)
        except PydanticValidationError as e:
            raise ProviderUnavailableError(self.name, f"malformed quote payload: {e.error_count()} errors")

    def _extract_json(self, response: httpx.Response) -> dict:
        """Pull the model's text out of the generateContent envelope and parse it."""
        try:
            envelope = response.json()
            text = envelope["candidates"][0]["content"]["parts"][0]["text"]
            data = json.loads(text)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderUnavailableError(self.name, f"unparseable response: {e}")

        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "response is not a JSON object")
        return data
