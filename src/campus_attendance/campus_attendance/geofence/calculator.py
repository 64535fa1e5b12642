from __future__ import annotations

import math
from typing import Optional

from ..core.constants import EARTH_RADIUS_METERS
from .model import Coordinates


def distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in meters (Haversine)."""

    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    delta_lat = math.radians(b.latitude - a.latitude)
    delta_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(delta_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points.
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def within_radius(center: Coordinates, radius_meters: Optional[float], point: Coordinates) -> bool:
    if not radius_meters:
        return True
    return distance_meters(center, point) <= radius_meters
