from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChargingPlanRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    origin_lat: float = Field(ge=-90.0, le=90.0)
    origin_lng: float = Field(ge=-180.0, le=180.0)
    destination_lat: float = Field(ge=-90.0, le=90.0)
    destination_lng: float = Field(ge=-180.0, le=180.0)
    battery_range_km: float = Field(gt=0.0, le=2000.0)
    battery_capacity_kwh: float = Field(gt=0.0, le=500.0)


class StationBoundsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    north: float | None = Field(default=None, ge=-90.0, le=90.0)
    south: float | None = Field(default=None, ge=-90.0, le=90.0)
    east: float | None = Field(default=None, ge=-180.0, le=180.0)
    west: float | None = Field(default=None, ge=-180.0, le=180.0)
    max_results: int = Field(default=500, ge=1, le=5000)

    @model_validator(mode="after")
    def check_bounds_complete(self) -> StationBoundsRequest:
        provided = [value is not None for value in (self.north, self.south, self.east, self.west)]
        if any(provided) and not all(provided):
            raise ValueError("north, south, east and west must be given together")
        return self

    @property
    def has_bounds(self) -> bool:
        return self.north is not None


class ConnectorResponse(BaseModel):
    type: str | None
    power_kw: float | None
    quantity: int | None


class StationResponse(BaseModel):
    id: int
    title: str | None
    latitude: float
    longitude: float
    status: str | None
    number_of_points: int | None
    connectors: list[ConnectorResponse]


class RecommendedStationResponse(StationResponse):
    distance_from_start_km: float
    distance_to_end_km: float
    battery_remaining_percent_at_station: float
    actual_detour_km: float
    total_distance_via_station_km: float
    max_power_kw: float
    estimated_charging_time_minutes: int
    efficiency_score: float
    battery_percent_at_arrival: float
    remaining_range_at_destination_km: float
    routing_success: bool


class WaypointResponse(BaseModel):
    latitude: float
    longitude: float
    distance_from_start_km: float
    distance_to_end_km: float


class ChargingPlanResponse(BaseModel):
    success: bool
    needs_charging: bool
    message: str
    warning: str | None = None
    total_distance_km: float | None = None
    range_at_arrival_km: float | None = None
    percent_at_arrival: float | None = None
    estimate_kind: Literal["routed", "approximate"] | None = None
    charging_waypoint: WaypointResponse | None = None
    station: RecommendedStationResponse | None = None
    alternatives: list[RecommendedStationResponse] = Field(default_factory=list)
