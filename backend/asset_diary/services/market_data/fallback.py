# backend/asset_diary/services/market_data/fallback.py
"""
Primary/secondary price source chain.

InvalidSymbolError from the primary is authoritative and is re-raised as-is.
Any other failure hands the lookup to the secondary exactly once; the
secondary's answer (quote or error) is final.
"""

import logging

from asset_diary.models import AssetClass
from asset_diary.services.exceptions import InvalidSymbolError
from asset_diary.services.market_data.base import PriceQuote
from asset_diary.services.protocols import PriceSource

logger = logging.getLogger(__name__)


class FallbackPriceSource:
    """
    PriceSource that consults `secondary` when `primary` cannot answer.

    Example:
        source = FallbackPriceSource(YahooPriceProvider(), GeminiPriceProvider(key))
        quote = source.get_price(AssetClass.STOCK, "AAPL")
    """

    def __init__(self, primary: PriceSource, secondary: PriceSource | None = None) -> None:
        self._primary = primary
        self._secondary = secondary

    def get_price(self, asset_class: AssetClass, symbol: str) -> PriceQuote:
        try:
            return self._primary.get_price(asset_class, symbol)
        except InvalidSymbolError:
            raise
        except Exception as e:
            if self._secondary is None:
                raise
            logger.warning(
                f"Primary price source failed for {symbol}: {e}; trying fallback"
            )

        return self._secondary.get_price(asset_class, symbol)
