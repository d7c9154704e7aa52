"""
Data Models Package
Validation models for ingested rows.
"""

from .price_row import PriceRow, parse_row

__all__ = [
    "PriceRow",
    "parse_row",
]
