from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import polars as pl
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from charge_planner.exceptions import InvalidStationDataError
from charge_planner.models import ChargingStation

STATION_SCHEMA = {
    "id": pl.Int64,
    "title": pl.Utf8,
    "address": pl.Utf8,
    "town": pl.Utf8,
    "state": pl.Utf8,
    "latitude": pl.Float64,
    "longitude": pl.Float64,
    "number_of_points": pl.Int64,
    "status_type": pl.Utf8,
    "operator": pl.Utf8,
    "connections": pl.Utf8,
}

UPDATE_FIELDS = [
    "title",
    "address",
    "town",
    "state",
    "latitude",
    "longitude",
    "number_of_points",
    "status_type",
    "operator",
    "connections",
]


class Command(BaseCommand):
    help = "Import charging stations from Open Charge Map (API or JSON export) using Polars."

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "--json-path",
            type=str,
            default=None,
            help="Read POIs from a saved Open Charge Map JSON export instead of the API",
        )
        parser.add_argument(
            "--country-code", type=str, default="SE", help="Country to fetch from the API"
        )
        parser.add_argument(
            "--max-results", type=int, default=10000, help="Max POIs to fetch from the API"
        )
        parser.add_argument(
            "--replace",
            action="store_true",
            help="Delete existing stations before importing",
        )

    def handle(self, *_: Any, **options: Any) -> None:
        if options["json_path"]:
            json_path = Path(options["json_path"])
            if not json_path.exists():
                raise CommandError(f"JSON file does not exist: {json_path}")
            payload = json.loads(json_path.read_text(encoding="utf-8"))
        else:
            payload = self._fetch_from_api(options["country_code"], options["max_results"])

        try:
            frame = normalize_stations(payload)
        except InvalidStationDataError as exc:
            raise CommandError(str(exc)) from exc
        records = frame.to_dicts()

        if options["replace"]:
            ChargingStation.objects.all().delete()

        existing = {
            station.id: station
            for station in ChargingStation.objects.filter(id__in=[row["id"] for row in records])
        }

        to_create: list[ChargingStation] = []
        to_update: list[ChargingStation] = []

        for row in records:
            values = {field: row[field] for field in UPDATE_FIELDS}
            values["connections"] = json.loads(row["connections"])

            station = existing.get(row["id"])
            if station is None:
                to_create.append(ChargingStation(id=row["id"], **values))
                continue

            for field, value in values.items():
                setattr(station, field, value)
            to_update.append(station)

        if to_create:
            ChargingStation.objects.bulk_create(to_create, batch_size=1000)
        if to_update:
            ChargingStation.objects.bulk_update(to_update, UPDATE_FIELDS, batch_size=1000)

        self.stdout.write(
            self.style.SUCCESS(
                "Imported charging stations: "
                + (
                    f"{len(records)} rows normalized, "
                    f"{len(to_create)} created, {len(to_update)} updated"
                )
            )
        )

    def _fetch_from_api(self, country_code: str, max_results: int) -> Any:
        try:
            response = httpx.get(
                f"{settings.OPEN_CHARGE_MAP_BASE_URL.rstrip('/')}/poi/",
                params={
                    "output": "json",
                    "countrycode": country_code,
                    "maxresults": max_results,
                },
                headers={
                    "Accept": "application/json",
                    "User-Agent": settings.OPEN_CHARGE_MAP_USER_AGENT,
                    "X-API-Key": settings.OPEN_CHARGE_MAP_API_KEY,
                },
                timeout=settings.OPEN_CHARGE_MAP_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CommandError(f"Open Charge Map request failed: {exc}") from exc


def normalize_stations(payload: Any) -> pl.DataFrame:
    if not isinstance(payload, list):
        raise InvalidStationDataError("Expected a JSON array of Open Charge Map POIs")

    rows = [_flatten_poi(poi) for poi in payload if isinstance(poi, dict)]
    frame = pl.DataFrame(rows, schema=STATION_SCHEMA)

    return (
        frame.with_columns(
            pl.col("title").str.strip_chars().fill_null(""),
            pl.col("address").str.strip_chars().fill_null(""),
            pl.col("town").str.strip_chars().fill_null(""),
            pl.col("state").str.strip_chars().fill_null(""),
            pl.col("operator").str.strip_chars().fill_null(""),
        )
        .filter(
            pl.col("id").is_not_null()
            & pl.col("latitude").is_not_null()
            & pl.col("longitude").is_not_null()
            & pl.col("latitude").is_between(-90.0, 90.0)
            & pl.col("longitude").is_between(-180.0, 180.0)
        )
        .unique(subset=["id"], keep="last", maintain_order=True)
        .sort("id")
    )


def _flatten_poi(poi: dict[str, Any]) -> dict[str, Any]:
    address_info = poi.get("AddressInfo") or {}
    connections = [
        {
            "type": (connection.get("ConnectionType") or {}).get("Title"),
            "power_kw": connection.get("PowerKW"),
            "quantity": connection.get("Quantity"),
        }
        for connection in poi.get("Connections") or []
    ]
    return {
        "id": _as_int(poi.get("ID")),
        "title": address_info.get("Title"),
        "address": address_info.get("AddressLine1"),
        "town": address_info.get("Town"),
        "state": address_info.get("StateOrProvince"),
        "latitude": _as_float(address_info.get("Latitude")),
        "longitude": _as_float(address_info.get("Longitude")),
        "number_of_points": _as_int(poi.get("NumberOfPoints")),
        "status_type": (poi.get("StatusType") or {}).get("Title"),
        "operator": (poi.get("OperatorInfo") or {}).get("Title"),
        "connections": json.dumps(connections),
    }


def _as_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
