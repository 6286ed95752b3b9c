"""Geodesic utilities (no external dependencies)."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

from speed_track.models import EARTH_RADIUS_KM, SPEED_PRECISION


def degrees_to_radians(degrees: float) -> float:
    """Convert an angle from degrees to radians."""

    return degrees * math.pi / 180.0


def great_circle_distance_km(lat1: float, lat2: float, lng1: float, lng2: float) -> float:
    """Compute the Haversine great-circle distance in kilometers.

    The haversine form is used rather than the spherical law of cosines because
    it stays accurate for the very small separations between consecutive GPS fixes.

    Args:
        lat1: Latitude of the first point in degrees.
        lat2: Latitude of the second point in degrees.
        lng1: Longitude of the first point in degrees.
        lng2: Longitude of the second point in degrees.

    Returns:
        Distance in kilometers.
    """

    d_lat = degrees_to_radians(lat2 - lat1)
    d_lng = degrees_to_radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(degrees_to_radians(lat1)) * math.cos(degrees_to_radians(lat2)) * math.sin(d_lng / 2.0) ** 2
    )
    a = min(1.0, a)  # float error can push near-antipodal points past 1
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in meters, with (lat, lon) argument order."""

    return great_circle_distance_km(lat1, lat2, lon1, lon2) * 1000.0


def round_half_up(value: float, places: int = SPEED_PRECISION) -> float:
    """Round to `places` decimals, ties away from zero.

    The shortest repr of the float is used as the decimal value, so 0.125 rounds
    to 0.13 and an already-rounded value is returned unchanged.
    """

    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
