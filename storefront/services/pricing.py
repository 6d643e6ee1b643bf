"""
Pricing Resolver - geography-dependent unit prices
"""
import ipaddress
import logging
from typing import Dict, Optional

import httpx

from storefront.config import settings
from storefront.schemas.pricing import CallerLocation, PriceQuote

logger = logging.getLogger(__name__)


class PricingResolver:
    """Resolves current prices per variant for the caller's location"""

    def __init__(
        self,
        home_country: Optional[str] = None,
        domestic_prices: Optional[Dict[str, int]] = None,
        international_prices: Optional[Dict[str, int]] = None,
        geolocation_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.home_country = (home_country or settings.HOME_COUNTRY).upper()
        self.domestic_prices = domestic_prices or settings.DOMESTIC_PRICES
        self.international_prices = international_prices or settings.INTERNATIONAL_PRICES
        self.geolocation_url = geolocation_url or settings.GEOLOCATION_URL
        self.timeout = timeout if timeout is not None else settings.GEOLOCATION_TIMEOUT
        self.transport = transport

    async def resolve(self, location: Optional[CallerLocation] = None) -> PriceQuote:
        """
        Get unit prices for a caller

        Args:
            location: Caller country code and/or IP; None means home country

        Returns:
            Price quote in whole rupees
        """
        country = await self.locate(location)
        table = self.domestic_prices if country == self.home_country else self.international_prices
        return PriceQuote(
            country=country,
            paperback=table["paperback"],
            hardcover=table["hardcover"],
            ebook=table["ebook"],
        )

    async def locate(self, location: Optional[CallerLocation]) -> str:
        """Country code for a caller, falling back to the home country"""
        if location is None:
            return self.home_country

        if location.country_code:
            return location.country_code.strip().upper()

        if not self._is_public_ip(location.ip):
            return self.home_country

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.geolocation_url.format(ip=location.ip))
                response.raise_for_status()
                country = response.text.strip().upper()
        except httpx.HTTPError as e:
            logger.warning("Geolocation lookup failed for %s: %s", location.ip, e)
            return self.home_country

        if len(country) != 2 or not country.isalpha():
            logger.warning("Geolocation returned unexpected country %r for %s", country, location.ip)
            return self.home_country
        return country

    @staticmethod
    def _is_public_ip(value: Optional[str]) -> bool:
        if not value:
            return False
        try:
            address = ipaddress.ip_address(value)
        except ValueError:
            return False
        return address.is_global
