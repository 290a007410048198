# backend/asset_diary/utils/fx_conversion.py
"""
FX Rate Conversion Utilities

Stored rates follow one convention:

    1 base_currency = rate x target_currency

Net worth is always expressed in the user's display currency, which is the
*base* of the rate table read for that user. An amount held in some other
currency is therefore the *target* side of a pair, and converts back with a
division:

    display_amount = amount / rates[amount_currency]

Example:
    display currency USD, rates = {"TWD": 32.5}
    3250 TWD -> 3250 / 32.5 = 100 USD
"""

from decimal import Decimal


def normalize_currency(currency: str | None) -> str:
    return (currency or "").strip().upper()


def usable_rate(rates: dict[str, Decimal], currency: str) -> Decimal | None:
    """Rate for `currency`, or None when missing or not strictly positive."""
    rate = rates.get(normalize_currency(currency))
    if rate is None or rate <= 0:
        return None
    return rate


def convert_to_display_currency(
    amount: Decimal,
    currency: str,
    display_currency: str,
    rates: dict[str, Decimal],
) -> Decimal | None:
    """
    Convert `amount` held in `currency` into `display_currency`.

    Args:
        amount: Amount in its own currency
        currency: Currency the amount is held in
        display_currency: Target currency (base of `rates`)
        rates: target_currency -> rate, for base = display_currency

    Returns:
        Converted amount, or None when no usable rate exists. Same-currency
        amounts are returned unchanged and need no rate.
    """
    if normalize_currency(currency) == normalize_currency(display_currency):
        return amount

    rate = usable_rate(rates, currency)
    if rate is None:
        return None
    return amount / rate
