from __future__ import annotations

import logging
from typing import Optional

import requests

from ..core.constants import IP_LOCATION_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://ipapi.co/json/"


class IpGeolocationClient:
    """Coarse location from an IP geolocation HTTP endpoint.

    ``url`` may contain an ``{ip}`` placeholder; it is filled with the
    client address when one is known, otherwise the lookup falls back to
    ``DEFAULT_URL`` (which geolocates the caller).
    """

    def __init__(
        self,
        url: str = "https://ipapi.co/{ip}/json/",
        *,
        timeout: float = IP_LOCATION_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = float(timeout)
        self._http = session or requests.Session()

    def _url_for(self, client_ip: Optional[str]) -> str:
        if "{ip}" not in self._url:
            return self._url
        if not client_ip:
            return DEFAULT_URL
        return self._url.format(ip=client_ip)

    def lookup(self, client_ip: Optional[str] = None) -> Optional[tuple[float, float]]:
        """Return (latitude, longitude) or None on any failure."""

        try:
            resp = self._http.get(self._url_for(client_ip), timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("IP geolocation failed: %s", e)
            return None

        lat = data.get("latitude") if isinstance(data, dict) else None
        lon = data.get("longitude") if isinstance(data, dict) else None
        if isinstance(lat, bool) or isinstance(lon, bool):
            return None
        if not isinstance(lat, (int, float)) or not isinstance(lon, (int, float)):
            logger.warning("IP geolocation returned no coordinates")
            return None
        return float(lat), float(lon)
