"""Geo-proximity helpers: haversine distance and radius filtering."""

from .proximity import (
    DEFAULT_SEARCH_RADIUS_KM,
    EARTH_RADIUS_KM,
    FARMER_SEARCH_RADIUS_KM,
    GeoPoint,
    bounding_box,
    display_distance,
    distance_km,
    within_radius,
)

__all__ = [
    "DEFAULT_SEARCH_RADIUS_KM",
    "EARTH_RADIUS_KM",
    "FARMER_SEARCH_RADIUS_KM",
    "GeoPoint",
    "bounding_box",
    "display_distance",
    "distance_km",
    "within_radius",
]
