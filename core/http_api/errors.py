"""
Stockflow HTTP API - Error Mapping
==================================
Stable transport error mapping for movement rejections and gateway failures.
"""

from __future__ import annotations

from typing import Any, Optional

from core.commands.rejection import RejectionReason
from core.http_api.contracts import HttpApiErrorBody, HttpApiResponse

INVALID_REQUEST = "INVALID_REQUEST"
INVALID_MOVEMENT_TYPE = "INVALID_MOVEMENT_TYPE"
METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
SUBMISSION_FAILED = "SUBMISSION_FAILED"

_STATUS_BY_CODE = {
    INVALID_REQUEST: 400,
    INVALID_MOVEMENT_TYPE: 400,
    METHOD_NOT_ALLOWED: 405,
    SUBMISSION_FAILED: 502,
}

# Any other error code is a movement rejection.
REJECTION_STATUS = 422


def error_response(
    *,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(
        ok=False,
        error=HttpApiErrorBody(
            code=code,
            message=message,
            details=details or {},
        ),
    ).to_dict()


def success_response(
    data: Any,
    *,
    meta: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(ok=True, data=data, meta=meta).to_dict()


def map_rejection_reason(reason: RejectionReason) -> HttpApiErrorBody:
    return HttpApiErrorBody(
        code=reason.code,
        message=reason.message,
        details={
            "policy_name": reason.policy_name,
            "category": reason.category,
            "detail_index": reason.detail_index,
        },
    )


def rejection_response(
    reason: RejectionReason,
    *,
    extra_details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    mapped = map_rejection_reason(reason)
    details = dict(mapped.details)
    if extra_details:
        details.update(extra_details)
    return error_response(
        code=mapped.code,
        message=mapped.message,
        details=details,
    )


def http_status_for(payload: dict[str, Any]) -> int:
    """HTTP status for an envelope produced by the handlers."""
    if payload.get("ok"):
        return 200
    code = payload.get("error", {}).get("code")
    return _STATUS_BY_CODE.get(code, REJECTION_STATUS)
