from __future__ import annotations

import pytest

from charge_planner.schemas import ChargingPlanRequest
from charge_planner.services.geo import haversine_km
from charge_planner.services.planner import ChargingPlannerService, to_response
from charge_planner.services.types import GeoPoint, Station


def _near(point: GeoPoint, dlat: float) -> GeoPoint:
    return GeoPoint(lat=point.lat + dlat, lng=point.lng)


@pytest.fixture
def corridor_stations(trip_route) -> list[Station]:
    steps = trip_route.steps
    return [
        Station(id=11, coordinates=_near(steps[18].start_point, 0.004), number_of_points=2),
        Station(id=12, coordinates=_near(steps[17].start_point, 0.004), number_of_points=2),
        Station(id=13, coordinates=_near(steps[16].start_point, 0.004), number_of_points=2),
    ]


def test_trip_within_range_needs_no_charging(routed_directions, origin, destination) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 600.0, 75.0, [])

    total = routed_directions.trip.distance_km
    assert result.success is True
    assert result.needs_charging is False
    assert result.station is None
    assert result.alternatives == []
    assert result.estimate_kind == "routed"
    assert result.range_at_arrival_km == pytest.approx(600.0 - total)
    assert result.percent_at_arrival == pytest.approx((600.0 - total) / 75.0 * 100.0)


def test_unavailable_provider_uses_great_circle_distance(
    fake_directions_cls, origin, destination
) -> None:
    planner = ChargingPlannerService(directions_provider=fake_directions_cls(fail=True))

    result = planner.recommend(origin, destination, 600.0, 500.0, [])
    response = to_response(result)

    assert result.needs_charging is False
    assert result.estimate_kind == "approximate"
    assert response.range_at_arrival_km == round(600.0 - haversine_km(origin, destination), 1)


def test_charging_stop_picks_minimum_detour(
    routed_directions, corridor_stations, origin, destination
) -> None:
    routed_directions.detours = {
        corridor_stations[0].coordinates: 3.5,
        corridor_stations[1].coordinates: 0.3,
        corridor_stations[2].coordinates: 1.8,
    }
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    assert result.success is True
    assert result.needs_charging is True
    assert result.station is not None
    assert result.station.station.id == 12
    assert result.station.actual_detour_km == pytest.approx(0.3)
    assert result.station.actual_detour_km == min(
        candidate.actual_detour_km for candidate in [result.station, *result.alternatives]
    )
    assert [candidate.station.id for candidate in result.alternatives] == [13, 11]
    assert "Actual detour: 0.3km" in result.message
    assert result.waypoint is not None
    assert result.waypoint.preferred_step_index == 18


def test_low_destination_buffer_attaches_warning(
    routed_directions, corridor_stations, origin, destination
) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    # 0.8 * 500 minus roughly 360 km to go is below the 100 km buffer
    assert result.success is True
    assert result.needs_charging is True
    assert result.warning is not None
    assert "buffer" in result.warning


def test_comfortable_destination_buffer_has_no_warning(
    routed_directions, corridor_stations, origin, destination
) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 200.0, 1000.0, corridor_stations)

    assert result.success is True
    assert result.warning is None


def test_no_candidate_stations_fails(routed_directions, origin, destination) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 200.0, 320.0, [])

    assert result.success is False
    assert result.needs_charging is True
    assert result.message == "No viable stations found in initial filtering"


def test_no_route_geometry_means_no_viable_stations(
    fake_directions_cls, corridor_stations, origin, destination
) -> None:
    planner = ChargingPlannerService(directions_provider=fake_directions_cls(fail=True))

    result = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    assert result.success is False
    assert result.estimate_kind == "approximate"
    assert result.message


def test_empty_scoring_result_fails(
    routed_directions, corridor_stations, origin, destination, mocker
) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)
    mocker.patch.object(planner.station_scorer, "score", return_value=[])

    result = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    assert result.success is False
    assert result.message == "No stations found within optimal charging range"


def test_internal_failures_become_failed_results(
    routed_directions, corridor_stations, origin, destination, mocker
) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)
    mocker.patch.object(planner.station_filter, "filter", side_effect=RuntimeError("boom"))

    result = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    assert result.success is False
    assert "boom" in result.message


def test_recommendation_is_idempotent(
    routed_directions, corridor_stations, origin, destination
) -> None:
    routed_directions.detours = {corridor_stations[0].coordinates: 1.0}
    planner = ChargingPlannerService(directions_provider=routed_directions)

    first = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)
    second = planner.recommend(origin, destination, 200.0, 500.0, corridor_stations)

    assert first == second


def test_alternatives_sorted_by_score(routed_directions, trip_route, origin, destination) -> None:
    point = trip_route.steps[18].start_point
    stations = [
        Station(id=index, coordinates=_near(point, 0.001 * index), number_of_points=index)
        for index in range(1, 6)
    ]
    routed_directions.detours = {
        station.coordinates: 0.7 * (5 - station.id) for station in stations
    }
    planner = ChargingPlannerService(directions_provider=routed_directions)

    result = planner.recommend(origin, destination, 200.0, 500.0, stations)

    scores = [candidate.efficiency_score for candidate in result.alternatives]
    assert len(result.alternatives) == 4
    assert scores == sorted(scores, reverse=True)
    assert result.station.efficiency_score >= scores[0]


@pytest.mark.django_db
def test_plan_loads_stations_from_store(routed_directions, origin, destination, mocker) -> None:
    planner = ChargingPlannerService(directions_provider=routed_directions)
    in_bounds = mocker.patch.object(planner.station_store, "in_bounds", return_value=[])

    response = planner.plan(
        ChargingPlanRequest(
            origin_lat=origin.lat,
            origin_lng=origin.lng,
            destination_lat=destination.lat,
            destination_lng=destination.lng,
            battery_range_km=200.0,
            battery_capacity_kwh=320.0,
        )
    )

    north, south, east, west = in_bounds.call_args.args
    assert north == pytest.approx(destination.lat + 0.3)
    assert south == pytest.approx(origin.lat - 0.3)
    assert east == pytest.approx(destination.lng + 0.3)
    assert west == pytest.approx(origin.lng - 0.3)
    assert response.success is False
    assert response.message
    assert response.total_distance_km == round(routed_directions.trip.distance_km, 1)
