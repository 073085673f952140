from __future__ import annotations

import math

from charge_planner.services.types import GeoPoint

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1_rad = math.radians(a.lat)
    lon1_rad = math.radians(a.lng)
    lat2_rad = math.radians(b.lat)
    lon2_rad = math.radians(b.lng)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    h = (
        math.sin(dlat / 2.0) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2.0) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def interpolate(start: GeoPoint, end: GeoPoint, ratio: float) -> GeoPoint:
    return GeoPoint(
        lat=start.lat + (end.lat - start.lat) * ratio,
        lng=start.lng + (end.lng - start.lng) * ratio,
    )


def bounding_box(
    points: list[GeoPoint], margin_degrees: float
) -> tuple[float, float, float, float]:
    """Return ``(north, south, east, west)`` around ``points`` padded by ``margin_degrees``."""
    lat_values = [point.lat for point in points]
    lng_values = [point.lng for point in points]
    return (
        max(lat_values) + margin_degrees,
        min(lat_values) - margin_degrees,
        max(lng_values) + margin_degrees,
        min(lng_values) - margin_degrees,
    )
