from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.validators import require_latitude, require_longitude


@dataclass(frozen=True)
class Coordinates:
    """A WGS-84 point in decimal degrees."""

    latitude: float
    longitude: float

    @classmethod
    def parse(cls, latitude, longitude) -> "Coordinates":
        return cls(latitude=require_latitude(latitude), longitude=require_longitude(longitude))


@dataclass(frozen=True)
class Geofence:
    """Circular area a scan must come from.

    ``radius_meters`` of ``None`` or ``0`` disables the location check
    (indoor rooms with poor GPS).
    """

    latitude: float
    longitude: float
    radius_meters: Optional[float]
    address: Optional[str] = None

    @property
    def center(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)

    @property
    def enforced(self) -> bool:
        return bool(self.radius_meters)

    def contains(self, point: Coordinates) -> bool:
        from .calculator import within_radius

        return within_radius(self.center, self.radius_meters, point)
