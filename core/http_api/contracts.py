"""
Stockflow HTTP API - Contracts
==============================
Framework-agnostic request/response DTOs for stock movement endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from engines.stock_movements.commands import MovementForm, MovementType


@dataclass(frozen=True)
class BatchQueryHttpRequest:
    location_id: Any = None
    supply_id: Any = None
    batch_id: Any = None


@dataclass(frozen=True)
class MovementHttpRequest:
    movement_type: MovementType
    form: MovementForm
    user_id: Any = None

    def __post_init__(self):
        if not isinstance(self.movement_type, MovementType):
            raise ValueError("movement_type must be MovementType.")
        if not isinstance(self.form, MovementForm):
            raise ValueError("form must be MovementForm.")


@dataclass(frozen=True)
class HttpApiErrorBody:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class HttpApiResponse:
    ok: bool
    data: Any = None
    error: Optional[HttpApiErrorBody] = None
    meta: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            body = {"ok": True, "data": self.data}
        else:
            if self.error is None:
                raise ValueError("error must be set when ok is False.")
            body = {"ok": False, "error": self.error.to_dict()}
        if self.meta:
            body["meta"] = dict(self.meta)
        return body
