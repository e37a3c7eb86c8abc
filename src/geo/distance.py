"""Centralized geographic distance calculations.

This module provides Haversine distance calculations between geographic
coordinates. Fare quotes use the kilometer variant to turn a booth pickup
and a drop address into a billable distance.
"""

from math import atan2, cos, radians, sin, sqrt

from pydantic import BaseModel, Field

EARTH_RADIUS_M = 6_371_000  # Earth radius in meters


class GeoPoint(BaseModel):
    """A latitude/longitude pair in degrees."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


def haversine_distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in meters.

    Uses the Haversine formula to calculate the shortest distance over
    the Earth's surface between two points specified by latitude/longitude.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def haversine_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in kilometers.

    Convenience wrapper around haversine_distance_m for fare calculation,
    which bills per kilometer.
    """
    return haversine_distance_m(lat1, lon1, lat2, lon2) / 1000.0


def point_distance_km(point_a: GeoPoint, point_b: GeoPoint) -> float:
    """Great-circle distance in kilometers between two GeoPoints."""
    return haversine_distance_km(
        point_a.latitude, point_a.longitude, point_b.latitude, point_b.longitude
    )
