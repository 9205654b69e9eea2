"""
Stockflow Stock Movements - Payload Builders
==============================================
Turn a validated MovementForm into the canonical ledger entry request.

Builders perform no validation and must not fail on a form that
passed `validate`. They are deterministic: the same form and user
always produce an equal payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from engines.stock_movements.commands import (
    DetailForm,
    ExitReason,
    MovementForm,
    MovementType,
)
from engines.stock_movements.values import (
    format_date,
    parse_date,
    to_decimal,
    to_identifier,
    to_json_number,
    trim_or_none,
)


# ══════════════════════════════════════════════════════════════
# PAYLOAD TYPES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MovementDetailPayload:
    supply_id: int
    quantity: Decimal
    batch_number: Optional[str] = None
    expiration_date: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MovementDetailPayload":
        quantity = to_decimal(data.get("quantity"))
        if quantity is None:
            raise ValueError("detail quantity must be numeric.")
        return cls(
            supply_id=int(data["supplyId"]),
            quantity=quantity,
            batch_number=data.get("batchNumber"),
            expiration_date=data.get("expirationDate"),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "supplyId": self.supply_id,
            "quantity": to_json_number(self.quantity),
        }
        if self.batch_number is not None:
            data["batchNumber"] = self.batch_number
        if self.expiration_date is not None:
            data["expirationDate"] = self.expiration_date
        if self.notes is not None:
            data["notes"] = self.notes
        return data


@dataclass(frozen=True)
class StockMovementRequest:
    """
    The ledger-entry-to-be.

    movement_type routes the request at the gateway and is not part
    of the serialized body; each type has its own endpoint.
    """
    movement_type: MovementType
    user_id: Any
    details: Tuple[MovementDetailPayload, ...] = field(default_factory=tuple)
    destination_location_id: Optional[int] = None
    origin_location_id: Optional[int] = None
    supplier_id: Optional[int] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    exit_reason: Optional[ExitReason] = None

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {}
        if self.destination_location_id is not None:
            data["destinationLocationId"] = self.destination_location_id
        if self.origin_location_id is not None:
            data["originLocationId"] = self.origin_location_id
        data["userId"] = self.user_id
        if self.supplier_id is not None:
            data["supplierId"] = self.supplier_id
        if self.reason is not None:
            data["reason"] = self.reason
        if self.notes is not None:
            data["notes"] = self.notes
        if self.exit_reason is not None:
            data["exitReason"] = self.exit_reason.value
        data["details"] = [d.to_dict() for d in self.details]
        return data


# ══════════════════════════════════════════════════════════════
# DETAIL NORMALIZATION
# ══════════════════════════════════════════════════════════════

def _build_detail(detail: DetailForm) -> MovementDetailPayload:
    supply_id = to_identifier(detail.supply_id)
    if supply_id is None:
        supply_id = to_identifier(detail.supplier_item_id) or 0
    return MovementDetailPayload(
        supply_id=supply_id,
        quantity=to_decimal(detail.quantity) or Decimal("0"),
        batch_number=trim_or_none(detail.batch_number),
        expiration_date=format_date(parse_date(detail.expiration_date)),
        notes=trim_or_none(detail.notes),
    )


def build_details(form: MovementForm) -> Tuple[MovementDetailPayload, ...]:
    return tuple(_build_detail(line) for line in form.lines())


# ══════════════════════════════════════════════════════════════
# BUILDERS
# ══════════════════════════════════════════════════════════════

def build_purchase_payload(form: MovementForm, user_id: Any) -> StockMovementRequest:
    return StockMovementRequest(
        movement_type=MovementType.PURCHASE,
        user_id=user_id,
        destination_location_id=form.destination_location_id(MovementType.PURCHASE),
        supplier_id=to_identifier(form.supplier_id),
        reason=trim_or_none(form.reason),
        notes=trim_or_none(form.notes),
        details=build_details(form),
    )


def build_transfer_payload(form: MovementForm, user_id: Any) -> StockMovementRequest:
    return StockMovementRequest(
        movement_type=MovementType.TRANSFER,
        user_id=user_id,
        origin_location_id=to_identifier(form.origin_location_id),
        destination_location_id=to_identifier(form.location_id),
        reason=trim_or_none(form.reason),
        notes=trim_or_none(form.notes),
        details=build_details(form),
    )


def build_adjustment_payload(form: MovementForm, user_id: Any) -> StockMovementRequest:
    """One location for both directions; origin mirrors the form origin when given."""
    return StockMovementRequest(
        movement_type=MovementType.ADJUSTMENT,
        user_id=user_id,
        destination_location_id=form.destination_location_id(MovementType.ADJUSTMENT),
        origin_location_id=to_identifier(form.origin_location_id),
        reason=trim_or_none(form.reason),
        notes=trim_or_none(form.notes),
        details=build_details(form),
    )


def build_return_payload(
    form: MovementForm,
    user_id: Any,
    default_exit_reason: ExitReason = ExitReason.SUPPLIER_RETURN,
) -> StockMovementRequest:
    exit_reason = (
        default_exit_reason
        if trim_or_none(form.exit_reason) is None
        else ExitReason.parse(form.exit_reason)
    )
    return StockMovementRequest(
        movement_type=MovementType.RETURN,
        user_id=user_id,
        origin_location_id=form.source_location_id(MovementType.RETURN),
        supplier_id=to_identifier(form.supplier_id),
        reason=trim_or_none(form.reason),
        notes=trim_or_none(form.notes),
        exit_reason=exit_reason,
        details=build_details(form),
    )


# ══════════════════════════════════════════════════════════════
# DISPATCH
# ══════════════════════════════════════════════════════════════

PAYLOAD_BUILDERS: Dict[MovementType, Callable[..., StockMovementRequest]] = {
    MovementType.PURCHASE: build_purchase_payload,
    MovementType.TRANSFER: build_transfer_payload,
    MovementType.ADJUSTMENT: build_adjustment_payload,
    MovementType.RETURN: build_return_payload,
}


def build_payload(
    movement_type: MovementType, form: MovementForm, user_id: Any,
) -> StockMovementRequest:
    return PAYLOAD_BUILDERS[movement_type](form, user_id)
