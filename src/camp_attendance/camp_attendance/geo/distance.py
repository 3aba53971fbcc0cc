"""Great-circle distance between punch locations and its display helpers."""

from __future__ import annotations

from typing import Optional

from haversine import Unit, haversine

EARTH_RADIUS_KM = 6371.0


def distance_km(
    lat1: Optional[float],
    lon1: Optional[float],
    lat2: Optional[float],
    lon2: Optional[float],
) -> Optional[float]:
    """Haversine distance in kilometres, or None when any coordinate is missing."""

    if lat1 is None or lon1 is None or lat2 is None or lon2 is None:
        return None
    central_angle = haversine((float(lat1), float(lon1)), (float(lat2), float(lon2)), unit=Unit.RADIANS)
    return EARTH_RADIUS_KM * central_angle


def format_distance(km: Optional[float]) -> str:
    if km is None:
        return "-"
    if km < 1:
        return f"{km * 1000:.0f} m"
    return f"{km:.2f} km"


def format_coords(lat: Optional[float], lon: Optional[float]) -> str:
    if lat is None or lon is None:
        return "N/A"
    return f"{lat:.4f}, {lon:.4f}"


def maps_url(lat: Optional[float], lon: Optional[float]) -> Optional[str]:
    if lat is None or lon is None:
        return None
    return f"https://www.google.com/maps?q={lat},{lon}"
