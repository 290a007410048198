# backend/asset_diary/routers/prices.py
"""
Price lookup endpoint.

- GET /prices/{asset_class}/{symbol} - Current price through the cached,
  fallback-backed price chain

Stock symbols starting with a digit are treated as Taiwan listings (TWD);
all others as US listings (USD). Crypto is always quoted in USD.
"""

from fastapi import APIRouter, Depends

from asset_diary.dependencies import get_price_source
from asset_diary.schemas.prices import PriceQuoteResponse
from asset_diary.services.market_data import CachingPriceSource

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{asset_class}/{symbol}",
    response_model=PriceQuoteResponse,
    summary="Get current price",
)
def get_price(
        asset_class: str,
        symbol: str,
        price_source: CachingPriceSource = Depends(get_price_source),
) -> PriceQuoteResponse:
    """
    Current price of `symbol` in its market currency.

    - **asset_class**: `stock` or `crypto`
    - **symbol**: e.g. `AAPL`, `2330`, `BTC`

    Raises **400** for an unknown asset class, **404** when no provider
    knows the symbol, **503** when providers are unavailable.
    """
    # Domain exceptions propagate to the global handlers
    quote = price_source.get_price(asset_class, symbol)
    return PriceQuoteResponse.model_validate(quote)
