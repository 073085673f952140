from __future__ import annotations

import pytest
from django.core.cache import caches
from django.test import Client

from charge_planner.exceptions import ExternalServiceError
from charge_planner.services.geo import haversine_km, interpolate
from charge_planner.services.types import DirectionsRoute, GeoPoint, RouteLeg, RouteStep

MALMO = GeoPoint(lat=55.6059, lng=13.0007)
STOCKHOLM = GeoPoint(lat=59.3293, lng=18.0686)


class FakeDirections:
    """In-memory directions provider.

    Returns ``trip`` for the exact origin/destination pair it was built for,
    straight-line legs for any other query, and adds ``detours[via]`` km to
    routes that pass through a via-point.
    """

    name = "fake"

    def __init__(
        self,
        trip: DirectionsRoute | None = None,
        endpoints: tuple[GeoPoint, GeoPoint] | None = None,
        detours: dict[GeoPoint, float] | None = None,
        fail: bool = False,
        fail_via: bool = False,
    ) -> None:
        self.trip = trip
        self.endpoints = endpoints
        self.detours = detours or {}
        self.fail = fail
        self.fail_via = fail_via
        self.calls: list[tuple[GeoPoint, ...]] = []

    def directions(self, waypoints: list[GeoPoint]) -> DirectionsRoute:
        self.calls.append(tuple(waypoints))
        if self.fail or (self.fail_via and len(waypoints) > 2):
            raise ExternalServiceError("fake provider unavailable")

        if self.trip is not None and tuple(waypoints) == self.endpoints:
            return self.trip

        if len(waypoints) == 3 and self.trip is not None:
            via = waypoints[1]
            distance = self.trip.distance_km + self.detours.get(via, 0.0)
            return DirectionsRoute(
                legs=(RouteLeg(distance_km=distance, duration_hours=distance / 90.0),)
            )

        legs = tuple(
            RouteLeg(
                distance_km=haversine_km(start, end),
                duration_hours=haversine_km(start, end) / 90.0,
            )
            for start, end in zip(waypoints, waypoints[1:])
        )
        return DirectionsRoute(legs=legs)


def build_route(origin: GeoPoint, destination: GeoPoint, steps: int = 60) -> DirectionsRoute:
    points = [interpolate(origin, destination, index / steps) for index in range(steps + 1)]
    route_steps = tuple(
        RouteStep(start_point=start, end_point=end, distance_km=haversine_km(start, end))
        for start, end in zip(points, points[1:])
    )
    distance = sum(step.distance_km for step in route_steps)
    return DirectionsRoute(
        legs=(RouteLeg(distance_km=distance, duration_hours=distance / 90.0, steps=route_steps),)
    )


@pytest.fixture(autouse=True)
def _clear_caches():
    caches["default"].clear()
    caches["distances"].clear()
    yield


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture
def trip_route() -> DirectionsRoute:
    return build_route(MALMO, STOCKHOLM)


@pytest.fixture
def fake_directions_cls() -> type[FakeDirections]:
    return FakeDirections


@pytest.fixture
def routed_directions(trip_route: DirectionsRoute) -> FakeDirections:
    return FakeDirections(trip=trip_route, endpoints=(MALMO, STOCKHOLM))


@pytest.fixture
def origin() -> GeoPoint:
    return MALMO


@pytest.fixture
def destination() -> GeoPoint:
    return STOCKHOLM


@pytest.fixture
def route_builder():
    return build_route
