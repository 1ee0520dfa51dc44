"""
Clients for the two external data sources.

Every failure, whatever its cause, surfaces as ``SourceUnavailable``
naming the source that failed.
"""

from typing import Optional

import httpx

from country_cache import config
from country_cache.exceptions import SourceUnavailable
from country_cache.logging_config import create_logger

logger = create_logger(__name__)

COUNTRIES = "countries"
RATES = "rates"

SOURCE_NAMES = {
    COUNTRIES: "Countries API",
    RATES: "Exchange Rates API",
}


def _unavailable(source: str) -> SourceUnavailable:
    return SourceUnavailable(source, f"Could not fetch data from {SOURCE_NAMES[source]}")


class ExternalSourceGateway:
    """
    Fetches the country directory and the exchange-rate table.

    :param countries_url: Country directory endpoint
    :param rates_url: Exchange-rate endpoint
    :param timeout: Per-request timeout in seconds
    :param transport: Optional httpx transport, used by tests to fake the services
    """

    def __init__(
        self,
        countries_url: str = config.COUNTRIES_API_URL,
        rates_url: str = config.RATES_API_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.countries_url = countries_url
        self.rates_url = rates_url
        self.timeout = timeout if timeout is not None else config.external_timeout()
        self.transport = transport

    async def _get_json(self, source: str, url: str):
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"{SOURCE_NAMES[source]} request failed: {type(e).__name__}: {e}")
            raise _unavailable(source) from e

    async def fetch_countries(self) -> list:
        data = await self._get_json(COUNTRIES, self.countries_url)
        if not isinstance(data, list):
            logger.error("Countries API returned a non-list payload")
            raise _unavailable(COUNTRIES)
        logger.info(f"Fetched {len(data)} countries")
        return data

    async def fetch_rates(self) -> dict:
        data = await self._get_json(RATES, self.rates_url)
        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            logger.error("Exchange Rates API payload is missing its rate table")
            raise _unavailable(RATES)
        logger.info(f"Fetched {len(rates)} exchange rates")
        return rates
