from __future__ import annotations

import logging

from django.conf import settings

from charge_planner.exceptions import ChargePlannerError
from charge_planner.services.directions import DirectionsProvider
from charge_planner.services.geo import haversine_km
from charge_planner.services.types import (
    ApproximateEstimate,
    GeoPoint,
    RoutedEstimate,
    RouteEstimate,
)

logger = logging.getLogger(__name__)


class RouteDistanceProvider:
    """Trip distance estimates that degrade to great-circle math instead of failing.

    Every lookup goes through the configured directions provider. Any provider
    failure (transport error, timeout, non-OK status, empty result or a missing
    API key) is recovered locally: the caller gets an ``ApproximateEstimate``
    built from the haversine distance and a fixed average speed.
    """

    def __init__(
        self,
        directions_provider: DirectionsProvider | None,
        fallback_speed_kmh: float | None = None,
    ) -> None:
        self.directions_provider = directions_provider
        self.fallback_speed_kmh = (
            float(settings.FALLBACK_AVG_SPEED_KMH)
            if fallback_speed_kmh is None
            else fallback_speed_kmh
        )

    @property
    def provider_name(self) -> str:
        if self.directions_provider is None:
            return "none"
        return self.directions_provider.name

    def estimate(self, origin: GeoPoint, destination: GeoPoint) -> RouteEstimate:
        if self.directions_provider is None:
            return self._approximate(origin, destination, "no routing provider configured")

        try:
            route = self.directions_provider.directions([origin, destination])
        except ChargePlannerError as exc:
            return self._approximate(origin, destination, str(exc))

        distance_km = route.distance_km
        duration_hours = route.duration_hours
        avg_speed = distance_km / duration_hours if duration_hours > 0 else self.fallback_speed_kmh
        return RoutedEstimate(
            distance_km=distance_km,
            avg_speed_kmh=avg_speed,
            route_steps=route.steps,
        )

    def leg_distance_km(self, start: GeoPoint, end: GeoPoint) -> float:
        if self.directions_provider is None:
            return haversine_km(start, end)

        try:
            route = self.directions_provider.directions([start, end])
        except ChargePlannerError as exc:
            logger.debug("Leg distance falling back to straight line: %s", exc)
            return haversine_km(start, end)

        return route.legs[0].distance_km

    def _approximate(self, origin: GeoPoint, destination: GeoPoint, reason: str) -> RouteEstimate:
        logger.warning("Using straight-line trip distance: %s", reason)
        return ApproximateEstimate(
            distance_km=haversine_km(origin, destination),
            avg_speed_kmh=self.fallback_speed_kmh,
            reason=reason,
        )
