from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol

from django.conf import settings

from charge_planner.exceptions import ChargePlannerError
from charge_planner.services.directions import DirectionsProvider
from charge_planner.services.distance_cache import DistanceCache
from charge_planner.services.types import (
    DetourEstimate,
    GeoPoint,
    ScoredStation,
    Station,
    ViableStation,
)

logger = logging.getLogger(__name__)

CONNECTOR_TYPES = frozenset(
    {
        "CHAdeMO",
        "Type 2 (Socket Only)",
        "Type 1 (J1772)",
        "CCS (Type 2)",
        "Europlug 2-Pin (CEE 7/16)",
        "Tesla (Model S/X)",
        "NACS / Tesla Supercharger",
        "CEE 7/4 - Schuko - Type F",
        "Unknown",
        "IEC 60309 5-pin",
        "Type 2 (Tethered Connector)",
        "IEC 60309 3-pin",
        "CEE 3 Pin",
    }
)
DEFAULT_POWER_KW = 50.0
CHARGE_WINDOW_RATIO = 0.6  # 20% -> 80% state of charge
CHARGING_EFFICIENCY = 0.85
POST_CHARGE_RATIO = 0.8
MAX_SCORED_STATIONS = 10


def max_charging_power_kw(station: Station) -> float:
    powers = [
        connector.power_kw
        for connector in station.connectors
        if connector.type is not None
        and connector.type.strip() in CONNECTOR_TYPES
        and connector.power_kw
    ]
    return max(powers, default=0.0) or DEFAULT_POWER_KW


def estimate_charging_minutes(power_kw: float, battery_capacity_kwh: float) -> float:
    charge_kwh = battery_capacity_kwh * CHARGE_WINDOW_RATIO
    return charge_kwh / (power_kw * CHARGING_EFFICIENCY) * 60.0


class EfficiencyFormula(Protocol):
    def __call__(
        self,
        *,
        actual_detour_km: float,
        charging_minutes: float,
        distance_from_start_km: float,
        battery_capacity_kwh: float,
        battery_remaining_percent: float,
        number_of_points: int,
        max_power_kw: float,
    ) -> float: ...


def detour_weighted_score(
    *,
    actual_detour_km: float,
    charging_minutes: float,
    distance_from_start_km: float,
    battery_capacity_kwh: float,
    battery_remaining_percent: float,
    number_of_points: int,
    max_power_kw: float,
) -> float:
    """Heuristic ranking score, higher is better. Detour dominates every other term."""
    detour = abs(actual_detour_km)
    score = 1000.0
    score -= detour * 200
    score -= charging_minutes * 0.2
    score -= abs(distance_from_start_km - 0.75 * battery_capacity_kwh) * 0.5
    if battery_remaining_percent > 30 and detour < 3:
        score += 100
    if battery_remaining_percent > 40 and detour < 1:
        score += 50
    score += number_of_points * 2
    if max_power_kw > 100:
        score += 15
    if max_power_kw > 200:
        score += 10
    return score


class StationScorer:
    def __init__(
        self,
        directions_provider: DirectionsProvider | None,
        distance_cache: DistanceCache,
        formula: EfficiencyFormula = detour_weighted_score,
        max_workers: int | None = None,
    ) -> None:
        self.directions_provider = directions_provider
        self.distance_cache = distance_cache
        self.formula = formula
        if max_workers is None:
            max_workers = settings.PLANNER_MAX_WORKERS
        self.max_workers = max(1, max_workers)

    def score(
        self,
        viable_stations: Sequence[ViableStation],
        origin: GeoPoint,
        destination: GeoPoint,
        total_distance_km: float,
        battery_range_km: float,
        battery_capacity_kwh: float,
    ) -> list[ScoredStation]:
        if not viable_stations:
            return []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            detours = list(
                executor.map(
                    lambda viable: self.estimate_detour(
                        origin, destination, viable, total_distance_km
                    ),
                    viable_stations,
                )
            )

        scored = [
            self._score_station(viable, detour, battery_capacity_kwh)
            for viable, detour in zip(viable_stations, detours)
        ]
        ranked = sorted(
            scored, key=lambda candidate: (-candidate.efficiency_score, candidate.station.id)
        )[:MAX_SCORED_STATIONS]

        for position, candidate in enumerate(ranked[:3], start=1):
            logger.info(
                "#%d %s detour=%.1f km score=%.1f",
                position,
                candidate.station.display_name,
                candidate.actual_detour_km,
                candidate.efficiency_score,
            )
        return ranked

    def estimate_detour(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        viable: ViableStation,
        total_distance_km: float,
    ) -> DetourEstimate:
        station_point = viable.station.coordinates
        if self.directions_provider is not None:
            try:
                route = self.directions_provider.directions([origin, station_point, destination])
            except ChargePlannerError as exc:
                logger.warning(
                    "Detour routing via %s failed, using cached leg distances: %s",
                    viable.station.display_name,
                    exc,
                )
            else:
                return DetourEstimate(
                    total_distance_via_station_km=route.distance_km,
                    actual_detour_km=route.distance_km - total_distance_km,
                    travel_time_minutes=route.duration_hours * 60.0,
                    routing_success=True,
                )

        to_end_km = self.distance_cache.resolve(station_point, destination)
        total_via_km = viable.distance_from_start_km + to_end_km
        return DetourEstimate(
            total_distance_via_station_km=total_via_km,
            actual_detour_km=total_via_km - total_distance_km,
            travel_time_minutes=None,
            routing_success=False,
        )

    def _score_station(
        self,
        viable: ViableStation,
        detour: DetourEstimate,
        battery_capacity_kwh: float,
    ) -> ScoredStation:
        station = viable.station
        max_power = max_charging_power_kw(station)
        charging_minutes = estimate_charging_minutes(max_power, battery_capacity_kwh)
        arrival_percent = 100.0 * (1 - viable.distance_from_start_km / battery_capacity_kwh)

        efficiency_score = self.formula(
            actual_detour_km=detour.actual_detour_km,
            charging_minutes=charging_minutes,
            distance_from_start_km=viable.distance_from_start_km,
            battery_capacity_kwh=battery_capacity_kwh,
            battery_remaining_percent=viable.battery_remaining_percent_at_station,
            number_of_points=station.number_of_points or 1,
            max_power_kw=max_power,
        )
        return ScoredStation(
            viable=viable,
            actual_detour_km=detour.actual_detour_km,
            total_distance_via_station_km=detour.total_distance_via_station_km,
            max_power_kw=max_power,
            estimated_charging_time_minutes=charging_minutes,
            efficiency_score=efficiency_score,
            battery_percent_at_arrival=arrival_percent,
            remaining_range_at_destination_km=POST_CHARGE_RATIO * battery_capacity_kwh
            - viable.distance_to_end_km,
            routing_success=detour.routing_success,
        )
