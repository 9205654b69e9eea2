"""
Stockflow Django Adapter Views
==============================
Pass-through HTTP views over core/http_api handlers.
"""

from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from adapters.django_api.wiring import build_dependencies
from core.http_api.contracts import BatchQueryHttpRequest, MovementHttpRequest
from core.http_api.errors import (
    INVALID_MOVEMENT_TYPE,
    INVALID_REQUEST,
    METHOD_NOT_ALLOWED,
    error_response,
    http_status_for,
)
from core.http_api.handlers import (
    get_available_batches,
    get_available_supplies,
    post_create_movement,
    post_validate_movement,
)
from engines.stock_movements.commands import MovementForm, MovementType


def _json_error(code: str, message: str, status: int = 400) -> JsonResponse:
    return JsonResponse(
        error_response(code=code, message=message, details={}),
        status=status,
    )


def _respond(payload: dict[str, Any]) -> JsonResponse:
    return JsonResponse(payload, status=http_status_for(payload))


def _method_not_allowed() -> JsonResponse:
    return _json_error(
        METHOD_NOT_ALLOWED,
        "Method not allowed for this endpoint.",
        status=405,
    )


def _parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        parsed = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Request body must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object.")
    return parsed


def _batch_query(request: HttpRequest) -> BatchQueryHttpRequest:
    return BatchQueryHttpRequest(
        location_id=request.GET.get("location_id"),
        supply_id=request.GET.get("supply_id"),
        batch_id=request.GET.get("batch_id"),
    )


def _dispatch_movement(handler, request: HttpRequest, movement_type: str):
    try:
        parsed_type = MovementType.parse(movement_type)
    except ValueError as exc:
        return _json_error(INVALID_MOVEMENT_TYPE, str(exc), status=400)

    try:
        body = _parse_json_body(request)
        contract = MovementHttpRequest(
            movement_type=parsed_type,
            form=MovementForm.from_dict(body),
            user_id=body.get("user_id", body.get("userId")),
        )
    except (ValueError, KeyError) as exc:
        return _json_error(INVALID_REQUEST, str(exc), status=400)

    return _respond(handler(contract, build_dependencies()))


@csrf_exempt
def batches_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    return _respond(get_available_batches(_batch_query(request), build_dependencies()))


@csrf_exempt
def supplies_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    return _respond(get_available_supplies(_batch_query(request), build_dependencies()))


@csrf_exempt
def movement_validate_view(request: HttpRequest, movement_type: str) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    return _dispatch_movement(post_validate_movement, request, movement_type)


@csrf_exempt
def movement_create_view(request: HttpRequest, movement_type: str) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    return _dispatch_movement(post_create_movement, request, movement_type)
