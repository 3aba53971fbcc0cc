from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from ..core.constants import PRECISE_LOCATION_TIMEOUT_SECONDS
from ..core.enums import LocationSource
from .ip_geolocation import IpGeolocationClient

logger = logging.getLogger(__name__)


class SensorError(Exception):
    """The on-device sensor denied, failed or timed out."""


@dataclass(frozen=True)
class Position:
    latitude: Optional[float]
    longitude: Optional[float]
    source: LocationSource
    message: Optional[str] = None

    @property
    def has_fix(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def unavailable(cls, message: str = "Location not available") -> "Position":
        return cls(latitude=None, longitude=None, source=LocationSource.UNAVAILABLE, message=message)

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "source": self.source.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Position":
        if not data:
            return cls.unavailable("Location not recorded")
        lat = data.get("latitude")
        lon = data.get("longitude")
        try:
            source = LocationSource(data.get("source") or "")
        except ValueError:
            source = LocationSource.BROWSER if lat is not None and lon is not None else LocationSource.UNAVAILABLE
        return cls(latitude=lat, longitude=lon, source=source, message=data.get("message"))


class DeviceSensor(Protocol):
    def read(self, *, timeout: float) -> tuple[float, float]:
        """Return (latitude, longitude) or raise SensorError / TimeoutError."""

        raise NotImplementedError


class SubmittedPositionSensor(DeviceSensor):
    """High-accuracy fix taken by the browser and posted with the request.

    The browser applies the timeout itself (``geolocation_options``); an
    error or missing reading arrives here as ``error``.
    """

    def __init__(self, latitude: Any = None, longitude: Any = None, *, error: Optional[str] = None):
        self._latitude = latitude
        self._longitude = longitude
        self._error = error

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "SubmittedPositionSensor":
        return cls(form.get("latitude"), form.get("longitude"), error=form.get("location_error") or None)

    def read(self, *, timeout: float) -> tuple[float, float]:
        if self._error:
            raise SensorError(self._error)
        if self._latitude in (None, "") or self._longitude in (None, ""):
            raise SensorError("Browser location denied")
        try:
            lat = float(self._latitude)
            lon = float(self._longitude)
        except (TypeError, ValueError):
            raise SensorError("Malformed browser coordinates")
        if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
            raise SensorError(f"Coordinates out of range: lat={lat}, lon={lon}")
        return lat, lon


def geolocation_options() -> dict:
    """Options handed to the browser's geolocation API."""
    return {"enableHighAccuracy": True, "timeout": PRECISE_LOCATION_TIMEOUT_SECONDS * 1000}


class GeoLocator:
    """Best-effort position: precise sensor first, IP estimate second.

    Never raises; absence of a fix is an ``unavailable`` Position and the
    caller decides whether that is fatal.
    """

    def __init__(self, ip_client: Optional[IpGeolocationClient] = None, *, timeout: float = PRECISE_LOCATION_TIMEOUT_SECONDS):
        self._ip_client = ip_client
        self._timeout = float(timeout)

    def acquire(self, sensor: Optional[DeviceSensor] = None, *, client_ip: Optional[str] = None) -> Position:
        if sensor is not None:
            try:
                lat, lon = sensor.read(timeout=self._timeout)
                return Position(latitude=lat, longitude=lon, source=LocationSource.BROWSER)
            except (SensorError, TimeoutError) as e:
                logger.info("Precise location failed (%s); trying IP estimate", e or "timeout")

        if self._ip_client is not None:
            coords = self._ip_client.lookup(client_ip)
            if coords:
                return Position(
                    latitude=coords[0],
                    longitude=coords[1],
                    source=LocationSource.IP,
                    message="Approximate location detected via IP",
                )

        return Position.unavailable()
