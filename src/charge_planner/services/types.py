from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass(slots=True, frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(slots=True, frozen=True)
class RouteStep:
    start_point: GeoPoint
    end_point: GeoPoint
    distance_km: float


@dataclass(slots=True, frozen=True)
class RouteLeg:
    distance_km: float
    duration_hours: float
    steps: tuple[RouteStep, ...] = ()


@dataclass(slots=True, frozen=True)
class DirectionsRoute:
    legs: tuple[RouteLeg, ...]

    @property
    def distance_km(self) -> float:
        return sum(leg.distance_km for leg in self.legs)

    @property
    def duration_hours(self) -> float:
        return sum(leg.duration_hours for leg in self.legs)

    @property
    def steps(self) -> tuple[RouteStep, ...]:
        return tuple(step for leg in self.legs for step in leg.steps)


@dataclass(slots=True, frozen=True)
class RoutedEstimate:
    distance_km: float
    avg_speed_kmh: float
    route_steps: tuple[RouteStep, ...]
    kind: Literal["routed"] = "routed"


@dataclass(slots=True, frozen=True)
class ApproximateEstimate:
    distance_km: float
    avg_speed_kmh: float
    reason: str
    route_steps: tuple[RouteStep, ...] = ()
    kind: Literal["approximate"] = "approximate"


RouteEstimate = RoutedEstimate | ApproximateEstimate


@dataclass(slots=True, frozen=True)
class Connector:
    type: str | None
    power_kw: float | None
    quantity: int | None = None


@dataclass(slots=True, frozen=True)
class Station:
    id: int
    coordinates: GeoPoint | None
    status: str | None = None
    number_of_points: int | None = None
    connectors: tuple[Connector, ...] = ()
    title: str | None = None

    @property
    def is_operational(self) -> bool:
        if not self.status:
            return True
        return self.status.strip().lower() == "operational"

    @property
    def display_name(self) -> str:
        return self.title or f"Station {self.id}"


@dataclass(slots=True, frozen=True)
class Waypoint:
    point: GeoPoint
    distance_from_start_km: float
    distance_to_end_km: float
    preferred_step_index: int | None = None


@dataclass(slots=True, frozen=True)
class ViableStation:
    station: Station
    distance_from_start_km: float
    distance_to_end_km: float
    battery_remaining_percent_at_station: float


@dataclass(slots=True, frozen=True)
class DetourEstimate:
    total_distance_via_station_km: float
    actual_detour_km: float
    travel_time_minutes: float | None
    routing_success: bool


@dataclass(slots=True, frozen=True)
class ScoredStation:
    viable: ViableStation
    actual_detour_km: float
    total_distance_via_station_km: float
    max_power_kw: float
    estimated_charging_time_minutes: float
    efficiency_score: float
    battery_percent_at_arrival: float
    remaining_range_at_destination_km: float
    routing_success: bool

    @property
    def station(self) -> Station:
        return self.viable.station


@dataclass(slots=True, frozen=True)
class PlanResult:
    success: bool
    message: str
    needs_charging: bool = False
    station: ScoredStation | None = None
    alternatives: list[ScoredStation] = field(default_factory=list)
    total_distance_km: float | None = None
    warning: str | None = None
    range_at_arrival_km: float | None = None
    percent_at_arrival: float | None = None
    waypoint: Waypoint | None = None
    estimate_kind: Literal["routed", "approximate"] | None = None
