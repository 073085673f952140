from __future__ import annotations

from collections.abc import Sequence

from charge_planner.services.geo import interpolate
from charge_planner.services.types import GeoPoint, RouteStep, Waypoint

LOW_CHARGE_TRIGGER_RATIO = 0.8
MAX_INTERPOLATION_RATIO = 0.9


def locate_charging_waypoint(
    origin: GeoPoint,
    destination: GeoPoint,
    total_distance_km: float,
    battery_range_km: float,
    route_steps: Sequence[RouteStep] = (),
) -> Waypoint | None:
    """Project where the vehicle is expected to drop to 20% of its range.

    With route geometry the steps are walked in order and the waypoint is the
    start of the first step whose cumulative distance reaches the trigger. If
    the trigger lies beyond the whole route the final step's end point is
    returned. Without geometry the point is interpolated along the straight
    line between origin and destination.
    """
    if total_distance_km <= 0:
        return None

    target_km = LOW_CHARGE_TRIGGER_RATIO * battery_range_km
    if not route_steps:
        return interpolate_waypoint(origin, destination, total_distance_km, target_km)

    accumulated_km = 0.0
    for index, step in enumerate(route_steps):
        if accumulated_km + step.distance_km >= target_km:
            distance_from_start = min(accumulated_km, total_distance_km)
            return Waypoint(
                point=step.start_point,
                distance_from_start_km=distance_from_start,
                distance_to_end_km=total_distance_km - distance_from_start,
                preferred_step_index=index,
            )
        accumulated_km += step.distance_km

    return Waypoint(
        point=route_steps[-1].end_point,
        distance_from_start_km=total_distance_km,
        distance_to_end_km=0.0,
        preferred_step_index=len(route_steps) - 1,
    )


def interpolate_waypoint(
    origin: GeoPoint,
    destination: GeoPoint,
    total_distance_km: float,
    target_km: float,
) -> Waypoint:
    ratio = 0.0
    if total_distance_km:
        ratio = min(target_km / total_distance_km, MAX_INTERPOLATION_RATIO)
    distance_from_start = ratio * total_distance_km
    return Waypoint(
        point=interpolate(origin, destination, ratio),
        distance_from_start_km=distance_from_start,
        distance_to_end_km=total_distance_km - distance_from_start,
        preferred_step_index=None,
    )
