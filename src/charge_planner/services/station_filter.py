from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings

from charge_planner.services.distance_cache import DistanceCache
from charge_planner.services.geo import haversine_km
from charge_planner.services.types import GeoPoint, RouteStep, Station, ViableStation, Waypoint

logger = logging.getLogger(__name__)

SEARCH_RADIUS_KM = 2.0
REACHABILITY_BUFFER_KM = 10.0
MAX_VIABLE_STATIONS = 5


class StationFilter:
    def __init__(self, distance_cache: DistanceCache, max_workers: int | None = None) -> None:
        self.distance_cache = distance_cache
        if max_workers is None:
            max_workers = settings.PLANNER_MAX_WORKERS
        self.max_workers = max(1, max_workers)

    def filter(
        self,
        stations: Sequence[Station],
        origin: GeoPoint,
        destination: GeoPoint,
        waypoint: Waypoint,
        route_steps: Sequence[RouteStep],
        battery_range_km: float,
        battery_capacity_kwh: float,
    ) -> list[ViableStation]:
        """Collect up to five reachable stations near the route, scanning back from the waypoint.

        Results keep discovery order: stations found at steps closer to the
        waypoint come first, and stations found at the same step keep the
        order in which they were supplied.
        """
        if not route_steps:
            logger.info("No route geometry available, station filtering skipped")
            return []

        located = [station for station in stations if station.coordinates is not None]
        max_from_start_km = battery_range_km - REACHABILITY_BUFFER_KM
        start_index = waypoint.preferred_step_index
        if start_index is None or start_index >= len(route_steps):
            start_index = len(route_steps) - 1

        accepted: list[Station] = []
        accepted_from_start: dict[int, float] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for index in range(start_index, -1, -1):
                step_point = route_steps[index].start_point
                accepted_ids = {station.id for station in accepted}
                nearby = [
                    station
                    for station in located
                    if station.id not in accepted_ids
                    and station.is_operational
                    and haversine_km(step_point, station.coordinates) <= SEARCH_RADIUS_KM
                ]
                # resolve only as many candidates as there are open slots
                position = 0
                while position < len(nearby) and len(accepted) < MAX_VIABLE_STATIONS:
                    batch = nearby[position : position + MAX_VIABLE_STATIONS - len(accepted)]
                    position += len(batch)
                    road_distances = list(
                        executor.map(
                            lambda station: (
                                self.distance_cache.resolve(step_point, station.coordinates),
                                self.distance_cache.resolve(origin, station.coordinates),
                            ),
                            batch,
                        )
                    )

                    for station, (from_step_km, from_start_km) in zip(batch, road_distances):
                        if from_step_km > SEARCH_RADIUS_KM:
                            logger.debug(
                                "%s rejected: %.2f km by road from route step %d",
                                station.display_name,
                                from_step_km,
                                index,
                            )
                            continue
                        if from_start_km > max_from_start_km:
                            logger.debug(
                                "%s rejected: %.1f km from origin exceeds %.1f km",
                                station.display_name,
                                from_start_km,
                                max_from_start_km,
                            )
                            continue

                        accepted.append(station)
                        accepted_from_start[station.id] = from_start_km

                if len(accepted) >= MAX_VIABLE_STATIONS:
                    break

            to_end_distances = list(
                executor.map(
                    lambda station: self.distance_cache.resolve(station.coordinates, destination),
                    accepted,
                )
            )

        viable = [
            ViableStation(
                station=station,
                distance_from_start_km=accepted_from_start[station.id],
                distance_to_end_km=to_end_km,
                battery_remaining_percent_at_station=100.0
                * (1 - accepted_from_start[station.id] / battery_capacity_kwh),
            )
            for station, to_end_km in zip(accepted, to_end_distances)
        ]
        logger.info("Station filter accepted %d of %d stations", len(viable), len(stations))
        return viable
