import pytest

from field_dispatch.core.geo import (
    METERS_PER_MILE,
    check_geofence,
    distance_meters,
    distance_miles,
)

PROPERTY = (40.7128, -74.0060)
# one degree of latitude on a 3959 mile sphere
DEGREES_PER_MILE = 1 / 69.0976


def _north_of_property(miles: float) -> tuple[float, float]:
    return PROPERTY[0] + miles * DEGREES_PER_MILE, PROPERTY[1]


def test_distance_is_zero_for_same_point():
    assert distance_miles(*PROPERTY, *PROPERTY) == 0


def test_distance_miles_along_meridian():
    lat, lon = _north_of_property(2.0)
    assert distance_miles(*PROPERTY, lat, lon) == pytest.approx(2.0, rel=1e-3)


def test_distance_meters_uses_statute_mile():
    lat, lon = _north_of_property(1.0)
    assert distance_meters(*PROPERTY, lat, lon) == pytest.approx(METERS_PER_MILE, rel=1e-3)


def test_geofence_verified_inside_radius():
    lat, lon = _north_of_property(0.3)
    result = check_geofence(lat, lon, *PROPERTY, radius_meters=1000)
    assert result.verified
    assert result.distance_meters == pytest.approx(0.3 * METERS_PER_MILE, rel=1e-3)


def test_geofence_not_verified_outside_radius():
    lat, lon = _north_of_property(2.0)
    result = check_geofence(lat, lon, *PROPERTY, radius_meters=1000)
    assert not result.verified
    assert result.distance_meters > 3000
