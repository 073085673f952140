from __future__ import annotations

from typing import Any

from charge_planner.models import ChargingStation
from charge_planner.services.types import Connector, GeoPoint, Station


class StationStore:
    """Read-only access to persisted charging stations, optionally limited to a bounding box."""

    def in_bounds(
        self,
        north: float,
        south: float,
        east: float,
        west: float,
        max_results: int = 500,
    ) -> list[Station]:
        rows = ChargingStation.objects.filter(
            latitude__gte=south,
            latitude__lte=north,
            longitude__gte=west,
            longitude__lte=east,
        ).order_by("id")[:max_results]
        return [to_station(row) for row in rows]

    def all_stations(self, max_results: int = 500) -> list[Station]:
        rows = ChargingStation.objects.order_by("id")[:max_results]
        return [to_station(row) for row in rows]

    def count(self) -> int:
        return ChargingStation.objects.count()


def to_station(row: ChargingStation) -> Station:
    return Station(
        id=row.id,
        coordinates=GeoPoint(lat=row.latitude, lng=row.longitude),
        status=row.status_type,
        number_of_points=row.number_of_points,
        connectors=tuple(_to_connector(raw) for raw in row.connections or []),
        title=row.title or None,
    )


def _to_connector(raw: dict[str, Any]) -> Connector:
    power = raw.get("power_kw")
    quantity = raw.get("quantity")
    return Connector(
        type=raw.get("type"),
        power_kw=float(power) if power is not None else None,
        quantity=int(quantity) if quantity is not None else None,
    )
