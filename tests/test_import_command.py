from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from charge_planner.exceptions import InvalidStationDataError
from charge_planner.management.commands.import_charging_stations import normalize_stations
from charge_planner.models import ChargingStation


def _poi(poi_id: int, title: str, latitude: float | None, longitude: float | None, **extra) -> dict:
    return {
        "ID": poi_id,
        "NumberOfPoints": extra.get("points", 2),
        "StatusType": {"Title": extra.get("status", "Operational")},
        "OperatorInfo": {"Title": "Ionity"},
        "AddressInfo": {
            "Title": f"  {title}  ",
            "AddressLine1": "Storgatan 1",
            "Town": "Jönköping",
            "StateOrProvince": None,
            "Latitude": latitude,
            "Longitude": longitude,
        },
        "Connections": extra.get(
            "connections",
            [
                {
                    "ConnectionType": {"Title": "CCS (Type 2)"},
                    "PowerKW": 150.0,
                    "Quantity": 2,
                }
            ],
        ),
    }


def _write_export(tmp_path: Path, pois: list[dict]) -> Path:
    json_path = tmp_path / "poi.json"
    json_path.write_text(json.dumps(pois), encoding="utf-8")
    return json_path


@pytest.mark.django_db
def test_import_charging_stations_from_json_export(tmp_path: Path) -> None:
    json_path = _write_export(
        tmp_path,
        [
            _poi(10, "Old title", 57.78, 14.16),
            _poi(10, "Jönköping A6", 57.78, 14.16),
            _poi(11, "No coordinates", None, None),
            _poi(12, "Broken latitude", 123.0, 14.0),
            _poi(5, "Huskvarna", 57.79, 14.27, connections=[]),
        ],
    )

    call_command("import_charging_stations", json_path=str(json_path))

    assert list(ChargingStation.objects.values_list("id", flat=True)) == [5, 10]

    station = ChargingStation.objects.get(id=10)
    assert station.title == "Jönköping A6"
    assert station.state == ""
    assert station.status_type == "Operational"
    assert station.operator == "Ionity"
    assert station.number_of_points == 2
    assert station.connections == [{"type": "CCS (Type 2)", "power_kw": 150.0, "quantity": 2}]
    assert ChargingStation.objects.get(id=5).connections == []


@pytest.mark.django_db
def test_reimport_updates_existing_stations(tmp_path: Path) -> None:
    first = _write_export(tmp_path, [_poi(10, "Jönköping A6", 57.78, 14.16)])
    call_command("import_charging_stations", json_path=str(first))

    second = _write_export(
        tmp_path,
        [_poi(10, "Jönköping A6", 57.78, 14.16, status="Temporarily Unavailable", points=6)],
    )
    call_command("import_charging_stations", json_path=str(second))

    station = ChargingStation.objects.get(id=10)
    assert ChargingStation.objects.count() == 1
    assert station.status_type == "Temporarily Unavailable"
    assert station.number_of_points == 6


@pytest.mark.django_db
def test_replace_clears_previous_stations(tmp_path: Path) -> None:
    ChargingStation.objects.create(id=99, title="Stale", latitude=55.0, longitude=13.0)
    json_path = _write_export(tmp_path, [_poi(10, "Jönköping A6", 57.78, 14.16)])

    call_command("import_charging_stations", json_path=str(json_path), replace=True)

    assert list(ChargingStation.objects.values_list("id", flat=True)) == [10]


@pytest.mark.django_db
def test_import_fetches_from_open_charge_map(mocker) -> None:
    get = mocker.patch(
        "charge_planner.management.commands.import_charging_stations.httpx.get",
        return_value=httpx.Response(
            200,
            json=[_poi(10, "Jönköping A6", 57.78, 14.16)],
            request=httpx.Request("GET", "https://api.openchargemap.io/v3/poi/"),
        ),
    )

    call_command("import_charging_stations", country_code="NO", max_results=50)

    assert ChargingStation.objects.filter(id=10).exists()
    params = get.call_args.kwargs["params"]
    assert params["countrycode"] == "NO"
    assert params["maxresults"] == 50


def test_import_reports_api_failures(mocker) -> None:
    mocker.patch(
        "charge_planner.management.commands.import_charging_stations.httpx.get",
        side_effect=httpx.ConnectError("refused"),
    )

    with pytest.raises(CommandError, match="Open Charge Map request failed"):
        call_command("import_charging_stations")


def test_import_rejects_missing_export(tmp_path: Path) -> None:
    with pytest.raises(CommandError, match="does not exist"):
        call_command("import_charging_stations", json_path=str(tmp_path / "missing.json"))


def test_normalize_rejects_non_list_payload() -> None:
    with pytest.raises(InvalidStationDataError, match="JSON array"):
        normalize_stations({"error": "rate limited"})
