"""
Price row validation models for price file ingestion.
Turns one delimited row into a typed candidate product.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..errors import RowValidationError

MANDATORY_FIELDS = ("name", "price", "expiration")


class PriceRow(BaseModel):
    """
    A validated row of a price file.

    The amount is expressed in the base currency, with the currency
    symbol already stripped.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str
    amount: Decimal
    expiration: date

    @field_validator("expiration", mode="before")
    @classmethod
    def parse_expiration(cls, v: Any) -> date:
        """Accept any date format pandas understands."""
        if isinstance(v, date):
            return v
        try:
            parsed = pd.to_datetime(str(v).strip())
        except (ValueError, TypeError, OverflowError) as e:
            raise ValueError(f"Corrupted data: Invalid expiration date '{v}'") from e
        if pd.isna(parsed):
            raise ValueError(f"Corrupted data: Invalid expiration date '{v}'")
        return parsed.date()


def _field(row: Dict[str, Any], key: str) -> str:
    value = row.get(key)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def parse_row(row: Dict[str, Any], row_number: Optional[int] = None, currency_symbol: str = "$") -> PriceRow:
    """
    Validate and convert one row of a price file.

    Args:
        row: Mapping with 'name', 'price' and 'expiration' keys
        row_number: 1-based data row number, for error reporting
        currency_symbol: Symbol every price must start with

    Returns:
        Parsed PriceRow

    Raises:
        RowValidationError: If the row is incomplete or its price is not
            in the base currency
    """
    name, price, expiration = (_field(row, key) for key in MANDATORY_FIELDS)

    if not name or not price or not expiration:
        raise RowValidationError(
            "Corrupted data: Missing mandatory fields (name, price, or expiration)", row_number
        )

    if not price.startswith(currency_symbol):
        first_char = price[0]
        if first_char.isdigit():
            raise RowValidationError("Corrupted data: Missing currency symbol", row_number)
        raise RowValidationError(f"Currency not supported: '{first_char}'", row_number)

    try:
        amount = Decimal(price[len(currency_symbol):].strip())
    except InvalidOperation:
        raise RowValidationError(f"Corrupted data: Invalid price '{price}'", row_number)
    if not amount.is_finite():
        raise RowValidationError(f"Corrupted data: Invalid price '{price}'", row_number)

    try:
        return PriceRow(name=name, amount=amount, expiration=expiration)
    except ValidationError as e:
        message = e.errors()[0]["msg"]
        raise RowValidationError(message.removeprefix("Value error, "), row_number)
