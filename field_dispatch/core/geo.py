"""Great-circle distance helpers and the on-site geofence check.

All distances are computed in miles with the haversine formula and converted
to meters where a geofence radius is involved.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_MILES = 3959.0
METERS_PER_MILE = 1609.344


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return distance_miles(lat1, lon1, lat2, lon2) * METERS_PER_MILE


@dataclass(frozen=True)
class GeofenceResult:
    distance_meters: float
    radius_meters: float
    verified: bool


def check_geofence(
    device_lat: float,
    device_lon: float,
    property_lat: float,
    property_lon: float,
    radius_meters: float,
) -> GeofenceResult:
    """Compare the device position against the property geofence.

    The result is a trust signal for reviewers; callers must not treat a
    failed check as a reason to refuse the operation.
    """
    meters = distance_meters(device_lat, device_lon, property_lat, property_lon)
    return GeofenceResult(
        distance_meters=meters,
        radius_meters=radius_meters,
        verified=meters <= radius_meters,
    )
