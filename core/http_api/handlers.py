"""
Stockflow HTTP API - Framework-Agnostic Handlers
================================================
Pure handler functions over contracts and injected dependencies.
Each returns an `{ok, data | error, meta}` envelope; `http_status_for`
maps it to a status code.
"""

from __future__ import annotations

from typing import Any

from core.http_api.contracts import BatchQueryHttpRequest, MovementHttpRequest
from core.http_api.dependencies import HttpApiDependencies
from core.http_api.errors import (
    INVALID_REQUEST,
    SUBMISSION_FAILED,
    error_response,
    rejection_response,
    success_response,
)
from engines.stock_movements.services import MovementStatus
from engines.stock_movements.values import is_blank


def _meta(request: MovementHttpRequest) -> dict[str, Any]:
    return {"movement_type": request.movement_type.value}


def get_available_batches(
    request: BatchQueryHttpRequest,
    dependencies: HttpApiDependencies,
) -> dict[str, Any]:
    availability = dependencies.movement_service.available_batches(
        request.location_id,
        request.supply_id,
        batch_id=request.batch_id,
    )
    return success_response(availability.to_dict())


def get_available_supplies(
    request: BatchQueryHttpRequest,
    dependencies: HttpApiDependencies,
) -> dict[str, Any]:
    supplies = dependencies.movement_service.available_supplies(request.location_id)
    return success_response([s.to_dict() for s in supplies])


def post_validate_movement(
    request: MovementHttpRequest,
    dependencies: HttpApiDependencies,
) -> dict[str, Any]:
    result = dependencies.movement_service.validate(request.movement_type, request.form)
    if not result.valid:
        return rejection_response(result.reason, extra_details=_meta(request))
    return success_response(result.to_dict(), meta=_meta(request))


def post_create_movement(
    request: MovementHttpRequest,
    dependencies: HttpApiDependencies,
) -> dict[str, Any]:
    if is_blank(request.user_id):
        return error_response(code=INVALID_REQUEST, message="user_id is required.")

    outcome = dependencies.movement_service.create_movement(
        request.movement_type,
        request.form,
        user_id=request.user_id,
    )
    if outcome.status is MovementStatus.REJECTED:
        return rejection_response(outcome.rejection, extra_details=_meta(request))
    if outcome.status is MovementStatus.FAILED:
        return error_response(
            code=SUBMISSION_FAILED,
            message=outcome.message,
            details=_meta(request),
        )
    return success_response(outcome.to_dict(), meta=_meta(request))
