"""
Stockflow HTTP API - Public API
===============================
"""

from core.http_api.contracts import (
    BatchQueryHttpRequest,
    HttpApiErrorBody,
    HttpApiResponse,
    MovementHttpRequest,
)
from core.http_api.dependencies import HttpApiDependencies
from core.http_api.errors import (
    INVALID_MOVEMENT_TYPE,
    INVALID_REQUEST,
    METHOD_NOT_ALLOWED,
    SUBMISSION_FAILED,
    error_response,
    http_status_for,
    map_rejection_reason,
    rejection_response,
    success_response,
)
from core.http_api.handlers import (
    get_available_batches,
    get_available_supplies,
    post_create_movement,
    post_validate_movement,
)

__all__ = [
    "BatchQueryHttpRequest",
    "MovementHttpRequest",
    "HttpApiErrorBody",
    "HttpApiResponse",
    "HttpApiDependencies",
    "INVALID_MOVEMENT_TYPE",
    "INVALID_REQUEST",
    "METHOD_NOT_ALLOWED",
    "SUBMISSION_FAILED",
    "error_response",
    "success_response",
    "map_rejection_reason",
    "rejection_response",
    "http_status_for",
    "get_available_batches",
    "get_available_supplies",
    "post_validate_movement",
    "post_create_movement",
]
