"""
Geo-Proximity Filter

Great-circle distance on a spherical Earth and radius filtering for provider
and task candidates. Stored points use longitude-first order ([lng, lat]);
the unset default [0, 0] is treated as "no location", so distances against
it are reported as unavailable rather than measured from null island.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from marketplace.shared.errors import ValidationError

EARTH_RADIUS_KM = 6371.0
# Keeps points exactly on the radius inside the box despite float rounding
BOX_MARGIN_DEGREES = 1e-9

DEFAULT_SEARCH_RADIUS_KM = 50.0
FARMER_SEARCH_RADIUS_KM = 100.0


@dataclass(frozen=True)
class GeoPoint:
    """A geographic point in degrees."""

    longitude: float
    latitude: float

    def __post_init__(self):
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"Longitude {self.longitude} is out of range [-180, 180]")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"Latitude {self.latitude} is out of range [-90, 90]")

    @property
    def is_set(self) -> bool:
        """False for the [0, 0] placeholder stored when no location was given."""
        return not (self.longitude == 0 and self.latitude == 0)

    def to_coordinates(self) -> list[float]:
        return [self.longitude, self.latitude]

    @classmethod
    def from_coordinates(cls, coordinates: Any) -> GeoPoint:
        """Build a point from a [longitude, latitude] pair.

        Raises:
            ValidationError: If the pair is malformed or out of range
        """
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
            raise ValidationError("Coordinates must be an array of [longitude, latitude]")
        try:
            longitude, latitude = (float(value) for value in coordinates)
        except (TypeError, ValueError) as e:
            raise ValidationError("Coordinates must be numeric") from e
        return cls(longitude=longitude, latitude=latitude)

    @classmethod
    def from_query(cls, lat: Any, lng: Any) -> GeoPoint | None:
        """Parse `lat`/`lng` request parameters.

        Returns None unless both are supplied; absence means "no geo filter".

        Raises:
            ValidationError: If a supplied value is not a number or out of range
        """
        if lat in (None, "") or lng in (None, ""):
            return None
        try:
            latitude = float(lat)
            longitude = float(lng)
        except (TypeError, ValueError) as e:
            raise ValidationError("lat and lng must be numbers") from e
        return cls(longitude=longitude, latitude=latitude)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> GeoPoint | None:
        """Read the point stored on a user or task row, if any."""
        longitude = row.get("longitude")
        latitude = row.get("latitude")
        if longitude is None or latitude is None:
            return None
        return cls(longitude=float(longitude), latitude=float(latitude))


def distance_km(point_a: GeoPoint | None, point_b: GeoPoint | None) -> float | None:
    """Haversine distance in kilometres between two points.

    Args:
        point_a: First point (degrees)
        point_b: Second point (degrees)

    Returns:
        Unrounded distance in km, or None when either point is absent or unset
    """
    if point_a is None or point_b is None or not point_a.is_set or not point_b.is_set:
        return None

    lat1 = math.radians(point_a.latitude)
    lat2 = math.radians(point_b.latitude)
    delta_lat = math.radians(point_b.latitude - point_a.latitude)
    delta_lon = math.radians(point_b.longitude - point_a.longitude)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def display_distance(km: float | None) -> float | None:
    """Round a distance to one decimal place for display only."""
    if km is None:
        return None
    return round(km, 1)


def within_radius(
    candidates: Iterable[dict[str, Any]],
    center: GeoPoint,
    max_distance_km: float,
    point_of: Callable[[dict[str, Any]], GeoPoint | None] = GeoPoint.from_row,
) -> list[dict[str, Any]]:
    """Keep candidates within `max_distance_km` of `center`.

    Each kept candidate is copied and annotated with its unrounded
    `distance_km`. Candidates without a usable location are dropped, since
    their distance is unavailable. Input order is preserved.

    Args:
        candidates: Provider or task rows
        center: Query point
        max_distance_km: Inclusive radius in km
        point_of: Extracts a candidate's point (defaults to its lng/lat columns)

    Returns:
        Filtered, annotated candidate list
    """
    kept = []
    for candidate in candidates:
        distance = distance_km(center, point_of(candidate))
        if distance is None or distance > max_distance_km:
            continue
        kept.append({**candidate, "distance_km": distance})
    return kept


def bounding_box(center: GeoPoint, radius_km: float) -> dict[str, float]:
    """Latitude/longitude bounds enclosing a radius around `center`.

    Used as an index-friendly SQL prefilter; the exact haversine check still
    runs afterwards. Falls back to the full longitude range near the poles or
    when the box would cross the antimeridian.
    """
    angular_radius = radius_km / EARTH_RADIUS_KM
    lat_delta = math.degrees(angular_radius) + BOX_MARGIN_DEGREES
    min_lat = max(-90.0, center.latitude - lat_delta)
    max_lat = min(90.0, center.latitude + lat_delta)

    # Widest longitude reached by the circle: asin(sin(d/R) / cos(lat))
    cos_lat = math.cos(math.radians(center.latitude))
    sin_radius = math.sin(angular_radius)
    if sin_radius >= cos_lat or min_lat <= -90.0 or max_lat >= 90.0:
        return {"min_lat": min_lat, "max_lat": max_lat, "min_lng": -180.0, "max_lng": 180.0}

    lng_delta = math.degrees(math.asin(sin_radius / cos_lat)) + BOX_MARGIN_DEGREES
    min_lng = center.longitude - lng_delta
    max_lng = center.longitude + lng_delta
    if min_lng < -180.0 or max_lng > 180.0:
        min_lng, max_lng = -180.0, 180.0

    return {"min_lat": min_lat, "max_lat": max_lat, "min_lng": min_lng, "max_lng": max_lng}
