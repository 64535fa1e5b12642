import math

import pytest

from src.campus_attendance.campus_attendance.core.constants import EARTH_RADIUS_METERS
from src.campus_attendance.campus_attendance.core.exceptions import ValidationError
from src.campus_attendance.campus_attendance.geofence.calculator import distance_meters, within_radius
from src.campus_attendance.campus_attendance.geofence.model import Coordinates, Geofence


def north_of(p: Coordinates, meters: float) -> Coordinates:
    return Coordinates(p.latitude + math.degrees(meters / EARTH_RADIUS_METERS), p.longitude)


CENTER = Coordinates(10.7769, 106.7009)


def test_distance_to_self_is_zero():
    assert distance_meters(CENTER, CENTER) == 0


def test_distance_is_symmetric():
    other = Coordinates(21.0285, 105.8542)
    assert distance_meters(CENTER, other) == pytest.approx(distance_meters(other, CENTER))


def test_distance_between_cities():
    # Ho Chi Minh City to Hanoi, roughly 1,140 km
    hanoi = Coordinates(21.0285, 105.8542)
    assert distance_meters(CENTER, hanoi) == pytest.approx(1_140_000, rel=0.01)


def test_antipodal_points_do_not_blow_up():
    a = Coordinates(0.0, 0.0)
    b = Coordinates(0.0, 180.0)
    assert distance_meters(a, b) == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_within_radius_boundary():
    assert within_radius(CENTER, 50, north_of(CENTER, 40))
    assert not within_radius(CENTER, 50, north_of(CENTER, 60))


@pytest.mark.parametrize("radius", [None, 0])
def test_missing_radius_disables_check(radius):
    far = Coordinates(-33.8688, 151.2093)
    assert within_radius(CENTER, radius, far)


def test_geofence_contains_uses_center_and_radius():
    fence = Geofence(latitude=CENTER.latitude, longitude=CENTER.longitude, radius_meters=50)
    assert fence.enforced
    assert fence.contains(north_of(CENTER, 10))
    assert not fence.contains(north_of(CENTER, 75))


def test_coordinates_parse_rejects_out_of_range():
    with pytest.raises(ValidationError):
        Coordinates.parse(91, 0)
    with pytest.raises(ValidationError):
        Coordinates.parse(0, -181)
    with pytest.raises(ValidationError):
        Coordinates.parse("abc", 0)
