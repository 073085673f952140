from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from pydantic import ValidationError

from charge_planner.schemas import (
    ChargingPlanRequest,
    ConnectorResponse,
    StationBoundsRequest,
    StationResponse,
)
from charge_planner.services.planner import ChargingPlannerService
from charge_planner.services.station_store import StationStore

_planner_service: ChargingPlannerService | None = None


def get_charging_planner() -> ChargingPlannerService:
    global _planner_service
    if _planner_service is None:
        _planner_service = ChargingPlannerService()
    return _planner_service


@require_GET
def health_view(_: HttpRequest) -> HttpResponse:
    planner = get_charging_planner()
    return JsonResponse(
        {
            "status": "ok",
            "routing_provider": planner.route_distance_provider.provider_name,
            "stations": {"total": planner.station_store.count()},
        }
    )


@require_GET
def charging_stations_view(request: HttpRequest) -> HttpResponse:
    try:
        bounds = StationBoundsRequest.model_validate(request.GET.dict())
    except ValidationError as exc:
        return _validation_error(exc)

    store = StationStore()
    if bounds.has_bounds:
        stations = store.in_bounds(
            bounds.north,
            bounds.south,
            bounds.east,
            bounds.west,
            max_results=bounds.max_results,
        )
    else:
        stations = store.all_stations(max_results=bounds.max_results)
    payload = [
        StationResponse(
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
        ).model_dump(mode="json")
        for station in stations
    ]
    return JsonResponse(payload, safe=False)


@csrf_exempt
@require_POST
def charging_plan_view(request: HttpRequest) -> HttpResponse:
    payload = _parse_json_payload(request)
    if isinstance(payload, JsonResponse):
        return payload

    try:
        plan_request = ChargingPlanRequest.model_validate(payload)
    except ValidationError as exc:
        return _validation_error(exc)

    response = get_charging_planner().plan(plan_request)
    return JsonResponse(response.model_dump(mode="json"), status=200)


def _parse_json_payload(request: HttpRequest) -> dict[str, Any] | JsonResponse:
    if not request.body:
        return {}

    try:
        payload = json.loads(request.body)
    except json.JSONDecodeError:
        return _error_response("invalid_json", "Request body must be valid JSON", status=400)

    if not isinstance(payload, dict):
        return _error_response("invalid_json", "JSON body must be an object", status=400)

    return payload


def _validation_error(exc: ValidationError) -> JsonResponse:
    return JsonResponse(
        {
            "error": {
                "code": "validation_error",
                "message": "Invalid request payload",
                "details": exc.errors(include_url=False, include_context=False),
            }
        },
        status=400,
    )


def _error_response(code: str, message: str, status: int) -> JsonResponse:
    return JsonResponse({"error": {"code": code, "message": message}}, status=status)
