"""Great-circle distance and walking-time helpers."""

import math

from metroroute.config import (
    WALKING_PENALTY_CAP,
    WALKING_SEGMENT_PENALTIES,
    WALKING_SPEED_MPS,
)
from metroroute.exceptions import InvalidInputError
from metroroute.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def to_degrees(radians: float) -> float:
    return radians * 180.0 / math.pi


def validate_coordinate(coord: Coordinate) -> Coordinate:
    """Reject coordinates outside WGS84 bounds (no clamping). NaN fails both checks."""
    if not (-90.0 <= coord.lat <= 90.0) or not (-180.0 <= coord.lng <= 180.0):
        raise InvalidInputError(f"Coordinate out of range: ({coord.lat}, {coord.lng})")
    return coord


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in km."""
    R = EARTH_RADIUS_KM
    lat1_r, lat2_r = to_radians(lat1), to_radians(lat2)
    dlat = to_radians(lat2 - lat1)
    dlon = to_radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    a = min(1.0, a)  # float drift on antipodal points
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    validate_coordinate(a)
    validate_coordinate(b)
    return haversine(a.lat, a.lng, b.lat, b.lng)


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    return distance_km(a, b) * 1000.0


def same_point(a: Coordinate, b: Coordinate) -> bool:
    return a.lat == b.lat and a.lng == b.lng


def estimate_walking_seconds(distance_m: float) -> float:
    """Walking time with tiered penalties for long walks.

    Short walks are taken at face value; past the last tier the penalty grows
    linearly from 1.8x up to WALKING_PENALTY_CAP.
    """
    base = distance_m / WALKING_SPEED_MPS
    for max_distance, multiplier in WALKING_SEGMENT_PENALTIES:
        if distance_m <= max_distance:
            return round(base * multiplier)

    last_distance, last_multiplier = WALKING_SEGMENT_PENALTIES[-1]
    factor = min(
        WALKING_PENALTY_CAP,
        last_multiplier + ((distance_m - last_distance) / 2000.0) * 1.2,
    )
    return round(base * factor)
