from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Protocol

import httpx
from django.conf import settings

from charge_planner.exceptions import (
    ExternalServiceError,
    MissingCredentialError,
    NoRouteFoundError,
)
from charge_planner.services.types import DirectionsRoute, GeoPoint, RouteLeg, RouteStep

logger = logging.getLogger(__name__)

METERS_TO_KM = 0.001
SECONDS_TO_HOURS = 1 / 3600.0


class DirectionsProvider(Protocol):
    name: str

    def directions(self, waypoints: list[GeoPoint]) -> DirectionsRoute: ...


class _HttpDirectionsClient:
    name = "base"

    def __init__(self, timeout: float | None = None, retry_count: int | None = None) -> None:
        self.timeout = settings.ROUTING_TIMEOUT_SECONDS if timeout is None else timeout
        self.retry_count = settings.ROUTING_RETRY_COUNT if retry_count is None else retry_count

    def directions(self, waypoints: list[GeoPoint]) -> DirectionsRoute:
        if len(waypoints) < 2:
            raise NoRouteFoundError("At least two route waypoints are required")

        endpoint, params = self._build_request(waypoints)

        for attempt in range(self.retry_count + 1):
            try:
                payload = self._fetch(endpoint, params)
            except (httpx.HTTPError, FuturesTimeoutError) as exc:
                if attempt >= self.retry_count:
                    raise ExternalServiceError(f"{self.name} directions request failed") from exc
                logger.warning(
                    "%s directions request failed (attempt %d), retrying", self.name, attempt + 1
                )
                time.sleep(0.3 * (attempt + 1))
                continue
            except ValueError as exc:
                raise ExternalServiceError(f"{self.name} returned invalid JSON") from exc

            try:
                return self._parse_response(payload)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise NoRouteFoundError("Invalid directions response") from exc

        raise ExternalServiceError(f"{self.name} directions request failed")

    def _fetch(self, endpoint: str, params: dict[str, str]) -> Any:
        """GET ``endpoint`` and decode JSON, giving up after ``timeout`` seconds in total.

        httpx applies its timeout to each connect/read/write phase, so a slow
        trickle of bytes can outlive it. The request runs on a worker thread
        and the caller stops waiting once the overall deadline passes.
        """
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(httpx.get, endpoint, params=params, timeout=self.timeout)
            response = future.result(timeout=self.timeout)
        finally:
            executor.shutdown(wait=False)
        response.raise_for_status()
        return response.json()

    def _build_request(self, waypoints: list[GeoPoint]) -> tuple[str, dict[str, str]]:
        raise NotImplementedError

    def _parse_response(self, payload: Any) -> DirectionsRoute:
        raise NotImplementedError


class GoogleDirectionsClient(_HttpDirectionsClient):
    name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        retry_count: int | None = None,
    ) -> None:
        super().__init__(timeout=timeout, retry_count=retry_count)
        self.base_url = settings.GOOGLE_DIRECTIONS_BASE_URL.rstrip("/")
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key

    def _build_request(self, waypoints: list[GeoPoint]) -> tuple[str, dict[str, str]]:
        if not self.api_key:
            raise MissingCredentialError("Google Maps API key is not configured")

        origin, *via, destination = waypoints
        params = {
            "origin": _latlng(origin),
            "destination": _latlng(destination),
            "key": self.api_key,
        }
        if via:
            params["waypoints"] = "|".join(_latlng(point) for point in via)
        return f"{self.base_url}/json", params

    def _parse_response(self, payload: Any) -> DirectionsRoute:
        status = payload.get("status")
        routes = payload.get("routes") or []
        if status != "OK" or not routes:
            raise NoRouteFoundError(f"Directions returned status {status}")

        legs: list[RouteLeg] = []
        for leg in routes[0].get("legs", []):
            steps = tuple(
                RouteStep(
                    start_point=_google_point(step["start_location"]),
                    end_point=_google_point(step["end_location"]),
                    distance_km=float(step["distance"]["value"]) * METERS_TO_KM,
                )
                for step in leg.get("steps", [])
            )
            legs.append(
                RouteLeg(
                    distance_km=float(leg["distance"]["value"]) * METERS_TO_KM,
                    duration_hours=float(leg["duration"]["value"]) * SECONDS_TO_HOURS,
                    steps=steps,
                )
            )

        if not legs:
            raise NoRouteFoundError("Directions returned a route without legs")
        return DirectionsRoute(legs=tuple(legs))


class OsrmClient(_HttpDirectionsClient):
    name = "osrm"

    def __init__(self, timeout: float | None = None, retry_count: int | None = None) -> None:
        super().__init__(timeout=timeout, retry_count=retry_count)
        self.base_url = settings.OSRM_BASE_URL.rstrip("/")

    def _build_request(self, waypoints: list[GeoPoint]) -> tuple[str, dict[str, str]]:
        coordinates = ";".join(f"{point.lng:.6f},{point.lat:.6f}" for point in waypoints)
        params = {
            "overview": "false",
            "steps": "true",
            "annotations": "false",
        }
        return f"{self.base_url}/route/v1/driving/{coordinates}", params

    def _parse_response(self, payload: Any) -> DirectionsRoute:
        if payload.get("code") != "Ok":
            raise NoRouteFoundError("Could not compute route")

        routes = payload.get("routes") or []
        if not routes:
            raise NoRouteFoundError("Could not compute route")

        legs: list[RouteLeg] = []
        for leg in routes[0].get("legs", []):
            raw_steps = leg.get("steps", [])
            locations = [_osrm_point(step["maneuver"]["location"]) for step in raw_steps]
            # a step ends where the next maneuver starts
            steps = tuple(
                RouteStep(
                    start_point=locations[index],
                    end_point=locations[min(index + 1, len(locations) - 1)],
                    distance_km=float(step.get("distance", 0.0)) * METERS_TO_KM,
                )
                for index, step in enumerate(raw_steps)
            )
            legs.append(
                RouteLeg(
                    distance_km=float(leg.get("distance", 0.0)) * METERS_TO_KM,
                    duration_hours=float(leg.get("duration", 0.0)) * SECONDS_TO_HOURS,
                    steps=steps,
                )
            )

        if not legs:
            raise NoRouteFoundError("Could not compute route")
        return DirectionsRoute(legs=tuple(legs))


def build_directions_provider(name: str | None = None) -> DirectionsProvider | None:
    provider = (name or settings.ROUTING_PROVIDER).lower()
    if provider == "none":
        return None
    if provider == "osrm":
        return OsrmClient()
    if provider == "google":
        return GoogleDirectionsClient()
    logger.error("Unknown routing provider %r, using straight-line estimates", provider)
    return None


def _latlng(point: GeoPoint) -> str:
    return f"{point.lat},{point.lng}"


def _google_point(location: dict[str, Any]) -> GeoPoint:
    return GeoPoint(lat=float(location["lat"]), lng=float(location["lng"]))


def _osrm_point(location: list[float]) -> GeoPoint:
    lng, lat = location
    return GeoPoint(lat=float(lat), lng=float(lng))
