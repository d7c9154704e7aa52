"""
Tests for the exchange rate provider.
"""

import httpx
import pytest

from pricefeed.errors import ExchangeRateError
from pricefeed.services.exchange_rates import ExchangeRateProvider

URL = "https://rates.test/{base}.json"


def provider_for(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ExchangeRateProvider(url_template=URL, client=client)


def test_fetch_rates():
    requested = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(
            200, json={"date": "2026-10-19", "usd": {"eur": 0.92, "GBP": 0.79, "usd": 1}}
        )

    rates = provider_for(handler).fetch_rates("USD")

    assert requested == ["https://rates.test/usd.json"]
    assert rates == {"eur": 0.92, "gbp": 0.79, "usd": 1}


def test_http_error_is_fatal():
    provider = provider_for(lambda request: httpx.Response(503))

    with pytest.raises(ExchangeRateError, match="Failed to fetch current exchange rates"):
        provider.fetch_rates("USD")


def test_transport_error_is_fatal():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExchangeRateError, match="Failed to fetch current exchange rates"):
        provider_for(handler).fetch_rates("USD")


def test_invalid_payload_is_fatal():
    provider = provider_for(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(ExchangeRateError):
        provider.fetch_rates("USD")


def test_missing_base_table_is_fatal():
    provider = provider_for(lambda request: httpx.Response(200, json={"eur": {"usd": 1.08}}))

    with pytest.raises(ExchangeRateError, match="no 'usd' table"):
        provider.fetch_rates("USD")
