"""
Currency Expansion
Derives the price of a product in every currency of a rate table.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Mapping, Union

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    """An amount in one currency."""

    currency: str
    amount: Decimal


def convert_amount(amount: Decimal, rate: Union[float, str, Decimal]) -> Decimal:
    """Multiply by a rate and round half-up to cents."""
    # str() keeps the rate's shortest repr instead of its binary expansion
    return (Decimal(amount) * Decimal(str(rate))).quantize(CENTS, rounding=ROUND_HALF_UP)


def expand_prices(
    amount: Decimal, rates: Mapping[str, Union[float, str, Decimal]], base_currency: str = "USD"
) -> List[PriceQuote]:
    """
    Price an amount in the base currency and in every other currency of a rate table.

    Args:
        amount: Amount in the base currency, used as-is for the base quote
        rates: Currency code -> multiplier relative to the base currency
        base_currency: Code of the base currency

    Returns:
        Base quote first, then one quote per other currency in table order
    """
    base = base_currency.upper()
    quotes = [PriceQuote(base, Decimal(amount))]

    for code, rate in rates.items():
        if code.upper() == base:
            continue
        quotes.append(PriceQuote(code.upper(), convert_amount(amount, rate)))

    return quotes
