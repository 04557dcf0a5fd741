"""
Geo-IP lookup strategies.

resolve_country() never raises; anything it cannot answer is "unknown".
"""

import ipaddress
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

import requests

from shortlink_app.config import settings


logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "unknown"


class GeoLocator(ABC):
    """Maps a client IP address to a country name."""

    @abstractmethod
    def resolve_country(self, ip: Optional[str]) -> str:
        pass


class NullGeoLocator(GeoLocator):
    """Null Object Pattern - every visitor is from an unknown country."""

    def resolve_country(self, ip: Optional[str]) -> str:
        return UNKNOWN_COUNTRY


class HTTPGeoLocator(GeoLocator):
    """
    Looks the address up on an HTTP geo service.

    Expects GET {base_url}/{ip} to return JSON with a "country" field
    (ip-api.com compatible). Private, loopback and malformed addresses
    are not sent anywhere.
    """

    def __init__(self, base_url: str, timeout: float = 1.5, session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def _is_public(ip: str) -> bool:
        try:
            address = ipaddress.ip_address(ip)
        except ValueError:
            return False
        return address.is_global

    def resolve_country(self, ip: Optional[str]) -> str:
        if not ip or not self._is_public(ip):
            return UNKNOWN_COUNTRY

        try:
            response = self.session.get(f"{self.base_url}/{ip}", timeout=self.timeout)
            response.raise_for_status()
            country = response.json().get("country")
        except (requests.RequestException, ValueError, AttributeError) as e:
            logger.warning("Geo lookup failed for %s: %s", ip, e)
            return UNKNOWN_COUNTRY

        return country.strip() if isinstance(country, str) and country.strip() else UNKNOWN_COUNTRY


class GeoBackend(Enum):
    """Available geo lookup backends"""
    NULL = "null"
    HTTP = "http"


class GeoLocatorFactory:
    """Creates the geo locator configured in settings."""

    @classmethod
    def create(cls, backend: GeoBackend = None) -> GeoLocator:
        if backend is None:
            backend = GeoBackend(settings.geo_backend)

        if backend == GeoBackend.NULL:
            return NullGeoLocator()
        if backend == GeoBackend.HTTP:
            return HTTPGeoLocator(settings.geo_lookup_url, timeout=settings.geo_timeout_seconds)

        raise ValueError(f"Unknown geo backend: {backend}")
