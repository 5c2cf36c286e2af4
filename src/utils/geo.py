"""Great-circle distance helpers for pet discovery."""

from __future__ import annotations

from math import asin, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0
# Distances are reported to clients at this precision.
DISTANCE_DECIMALS = 1


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km between two decimal-degree points.

    Callers must not pass missing coordinates. A NaN input yields NaN rather
    than an exception.
    """

    phi1 = radians(lat1)
    phi2 = radians(lat2)
    half_dphi = (phi2 - phi1) / 2
    half_dlambda = radians(lng2 - lng1) / 2

    h = sin(half_dphi) ** 2 + cos(phi1) * cos(phi2) * sin(half_dlambda) ** 2
    # Float error can push h just past 1 near the antipode.
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(h, 1.0)))


def coordinates_in_range(latitude: float, longitude: float) -> bool:
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def has_coordinates(profile: dict) -> bool:
    """Return True when a profile has both latitude and longitude set."""

    return profile.get("latitude") is not None and profile.get("longitude") is not None


def round_distance(distance_km: float | None) -> float | None:
    if distance_km is None:
        return None
    return round(distance_km, DISTANCE_DECIMALS)
