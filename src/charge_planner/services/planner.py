from __future__ import annotations

import logging
from collections.abc import Sequence

from django.conf import settings
from django.db import DatabaseError

from charge_planner.exceptions import NoViableStationsError
from charge_planner.schemas import (
    ChargingPlanRequest,
    ChargingPlanResponse,
    ConnectorResponse,
    RecommendedStationResponse,
    WaypointResponse,
)
from charge_planner.services.directions import DirectionsProvider, build_directions_provider
from charge_planner.services.distance_cache import DistanceCache
from charge_planner.services.geo import bounding_box
from charge_planner.services.route_distance import RouteDistanceProvider
from charge_planner.services.scoring import StationScorer
from charge_planner.services.station_filter import StationFilter
from charge_planner.services.station_store import StationStore
from charge_planner.services.types import (
    GeoPoint,
    PlanResult,
    RouteEstimate,
    ScoredStation,
    Station,
    Waypoint,
)
from charge_planner.services.waypoint import (
    LOW_CHARGE_TRIGGER_RATIO,
    interpolate_waypoint,
    locate_charging_waypoint,
)

logger = logging.getLogger(__name__)

DESTINATION_BUFFER_RATIO = 0.2

_UNSET = object()


class ChargingPlannerService:
    def __init__(
        self,
        directions_provider: DirectionsProvider | None | object = _UNSET,
        distance_cache: DistanceCache | None = None,
        station_filter: StationFilter | None = None,
        station_scorer: StationScorer | None = None,
        station_store: StationStore | None = None,
    ) -> None:
        if directions_provider is _UNSET:
            directions_provider = build_directions_provider()
        self.directions_provider = directions_provider
        self.route_distance_provider = RouteDistanceProvider(directions_provider)
        self.distance_cache = distance_cache or DistanceCache(self.route_distance_provider)
        self.station_filter = station_filter or StationFilter(self.distance_cache)
        self.station_scorer = station_scorer or StationScorer(
            directions_provider, self.distance_cache
        )
        self.station_store = station_store or StationStore()

    def plan(self, request: ChargingPlanRequest) -> ChargingPlanResponse:
        origin = GeoPoint(lat=request.origin_lat, lng=request.origin_lng)
        destination = GeoPoint(lat=request.destination_lat, lng=request.destination_lng)

        try:
            stations = self.load_candidate_stations(origin, destination)
        except DatabaseError as exc:
            logger.exception("Station store query failed")
            return ChargingPlanResponse(
                success=False,
                needs_charging=False,
                message=f"Error loading charging stations: {exc}",
            )

        result = self.recommend(
            origin,
            destination,
            request.battery_range_km,
            request.battery_capacity_kwh,
            stations,
        )
        return to_response(result)

    def load_candidate_stations(self, origin: GeoPoint, destination: GeoPoint) -> list[Station]:
        north, south, east, west = bounding_box(
            [origin, destination], float(settings.STATION_CORRIDOR_DEGREES)
        )
        stations = self.station_store.in_bounds(
            north, south, east, west, max_results=settings.MAX_CANDIDATE_STATIONS
        )
        logger.info("Loaded %d candidate stations in trip corridor", len(stations))
        return stations

    def recommend(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        battery_range_km: float,
        battery_capacity_kwh: float,
        stations: Sequence[Station],
    ) -> PlanResult:
        """Recommend a single charging stop for the trip, or report that none is needed.

        Never raises: internal failures come back as ``success=False`` results.
        """
        estimate: RouteEstimate | None = None
        try:
            estimate = self.route_distance_provider.estimate(origin, destination)
            total_distance_km = estimate.distance_km
            logger.info(
                "Trip distance %.1f km (%s), range %.1f km, capacity %.1f kWh",
                total_distance_km,
                estimate.kind,
                battery_range_km,
                battery_capacity_kwh,
            )

            if battery_range_km >= total_distance_km:
                range_at_arrival = battery_range_km - total_distance_km
                return PlanResult(
                    success=True,
                    needs_charging=False,
                    message="No charging needed - trip is within vehicle range",
                    total_distance_km=total_distance_km,
                    range_at_arrival_km=range_at_arrival,
                    percent_at_arrival=range_at_arrival / battery_capacity_kwh * 100.0,
                    estimate_kind=estimate.kind,
                )

            return self._plan_charging_stop(
                origin,
                destination,
                battery_range_km,
                battery_capacity_kwh,
                stations,
                estimate,
            )
        except NoViableStationsError as exc:
            logger.info("No charging stop recommended: %s", exc)
            return PlanResult(
                success=False,
                needs_charging=True,
                message=str(exc),
                total_distance_km=estimate.distance_km if estimate else None,
                estimate_kind=estimate.kind if estimate else None,
            )
        except Exception as exc:
            logger.exception("Charging recommendation failed")
            return PlanResult(
                success=False,
                message=f"Error finding charging stations: {exc}",
            )

    def _plan_charging_stop(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        battery_range_km: float,
        battery_capacity_kwh: float,
        stations: Sequence[Station],
        estimate: RouteEstimate,
    ) -> PlanResult:
        total_distance_km = estimate.distance_km
        route_steps = estimate.route_steps

        waypoint = locate_charging_waypoint(
            origin, destination, total_distance_km, battery_range_km, route_steps
        )
        if waypoint is None:
            waypoint = interpolate_waypoint(
                origin,
                destination,
                total_distance_km,
                LOW_CHARGE_TRIGGER_RATIO * battery_range_km,
            )
        logger.info(
            "Charging waypoint at %.5f,%.5f (%.1f km from start)",
            waypoint.point.lat,
            waypoint.point.lng,
            waypoint.distance_from_start_km,
        )

        viable = self.station_filter.filter(
            stations,
            origin,
            destination,
            waypoint,
            route_steps,
            battery_range_km,
            battery_capacity_kwh,
        )
        if not viable:
            raise NoViableStationsError("No viable stations found in initial filtering")

        scored = self.station_scorer.score(
            viable,
            origin,
            destination,
            total_distance_km,
            battery_range_km,
            battery_capacity_kwh,
        )
        if not scored:
            raise NoViableStationsError("No stations found within optimal charging range")

        best, alternatives = scored[0], scored[1:]
        message = (
            f"Best station: {best.station.display_name} - "
            f"Actual detour: {best.actual_detour_km:.1f}km (Score: {best.efficiency_score:.1f})"
        )

        warning = None
        min_buffer_km = DESTINATION_BUFFER_RATIO * battery_capacity_kwh
        if best.remaining_range_at_destination_km < min_buffer_km:
            warning = (
                f"Arriving with {best.remaining_range_at_destination_km:.1f} km of range, "
                f"below the {min_buffer_km:.1f} km destination buffer"
            )
            logger.warning("%s: %s", best.station.display_name, warning)

        return PlanResult(
            success=True,
            needs_charging=True,
            message=message,
            station=best,
            alternatives=list(alternatives),
            total_distance_km=total_distance_km,
            warning=warning,
            waypoint=waypoint,
            estimate_kind=estimate.kind,
        )


def to_response(result: PlanResult) -> ChargingPlanResponse:
    return ChargingPlanResponse(
        success=result.success,
        needs_charging=result.needs_charging,
        message=result.message,
        warning=result.warning,
        total_distance_km=_round(result.total_distance_km),
        range_at_arrival_km=_round(result.range_at_arrival_km),
        percent_at_arrival=_round(result.percent_at_arrival),
        estimate_kind=result.estimate_kind,
        charging_waypoint=_waypoint_response(result.waypoint),
        station=_station_response(result.station) if result.station else None,
        alternatives=[_station_response(candidate) for candidate in result.alternatives],
    )


def _waypoint_response(waypoint: Waypoint | None) -> WaypointResponse | None:
    if waypoint is None:
        return None
    return WaypointResponse(
        latitude=round(waypoint.point.lat, 6),
        longitude=round(waypoint.point.lng, 6),
        distance_from_start_km=round(waypoint.distance_from_start_km, 1),
        distance_to_end_km=round(waypoint.distance_to_end_km, 1),
    )


def _station_response(scored: ScoredStation) -> RecommendedStationResponse:
    station = scored.station
    viable = scored.viable
    return RecommendedStationResponse(
        id=station.id,
        title=station.title,
        latitude=station.coordinates.lat,
        longitude=station.coordinates.lng,
        status=station.status,
        number_of_points=station.number_of_points,
        connectors=[
            ConnectorResponse(
                type=connector.type,
                power_kw=connector.power_kw,
                quantity=connector.quantity,
            )
            for connector in station.connectors
        ],
        distance_from_start_km=round(viable.distance_from_start_km, 1),
        distance_to_end_km=round(viable.distance_to_end_km, 1),
        battery_remaining_percent_at_station=round(
            viable.battery_remaining_percent_at_station, 1
        ),
        actual_detour_km=round(scored.actual_detour_km, 1),
        total_distance_via_station_km=round(scored.total_distance_via_station_km, 1),
        max_power_kw=scored.max_power_kw,
        estimated_charging_time_minutes=round(scored.estimated_charging_time_minutes),
        efficiency_score=round(scored.efficiency_score, 1),
        battery_percent_at_arrival=round(scored.battery_percent_at_arrival, 1),
        remaining_range_at_destination_km=round(scored.remaining_range_at_destination_km, 1),
        routing_success=scored.routing_success,
    )


def _round(value: float | None) -> float | None:
    return round(value, 1) if value is not None else None
