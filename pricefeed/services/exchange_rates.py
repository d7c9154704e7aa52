"""Exchange rate provider - fetches a rate table for one base currency."""
import logging
from typing import Dict, Optional

import httpx

from ..errors import ExchangeRateError

logger = logging.getLogger(__name__)

DEFAULT_RATES_URL = (
    "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/{base}.json"
)


class ExchangeRateProvider:
    """
    Currency API client.

    The API answers `{"date": ..., "<base>": {"<code>": <rate>, ...}}`
    with lower-case currency codes.
    """

    def __init__(
        self,
        url_template: str = DEFAULT_RATES_URL,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self._client = client

    def fetch_rates(self, base_currency: str = "USD") -> Dict[str, float]:
        """
        Fetch current rates relative to a base currency.

        Args:
            base_currency: Currency code the rates are relative to

        Returns:
            Lower-case currency code -> multiplier

        Raises:
            ExchangeRateError: On any transport, HTTP or payload error
        """
        base = base_currency.lower()
        url = self.url_template.format(base=base)

        try:
            if self._client is not None:
                resp = self._client.get(url, timeout=self.timeout)
            else:
                resp = httpx.get(url, timeout=self.timeout, follow_redirects=True)
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch exchange rates from {url}: {e}")
            raise ExchangeRateError(f"Failed to fetch current exchange rates: {e}") from e

        rates = payload.get(base) if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise ExchangeRateError(
                f"Failed to fetch current exchange rates: no '{base}' table in response"
            )

        logger.info(f"Fetched {len(rates)} exchange rates for {base.upper()} ({payload.get('date')})")
        return {code.lower(): rate for code, rate in rates.items() if isinstance(rate, (int, float))}
