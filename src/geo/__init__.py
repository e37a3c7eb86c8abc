"""Geographic helpers."""

from .distance import GeoPoint, haversine_distance_km, haversine_distance_m, point_distance_km

__all__ = ["GeoPoint", "haversine_distance_km", "haversine_distance_m", "point_distance_km"]
