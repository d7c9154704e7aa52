"""
Services Package
Clients for external services used during ingestion.
"""

from .exchange_rates import ExchangeRateProvider

__all__ = ["ExchangeRateProvider"]
