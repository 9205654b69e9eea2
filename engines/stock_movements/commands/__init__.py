"""
Stockflow Stock Movements - Movement Types and Form Input
===========================================================
The closed set of movement types and the typed form a caller
assembles before validation.

Forms hold RAW values (quantities may be strings, dates may be
strings or lists). The validator decides whether they are usable;
the builder coerces them once validation has passed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from engines.stock_movements.values import is_blank, to_identifier


# ══════════════════════════════════════════════════════════════
# MOVEMENT TYPES
# ══════════════════════════════════════════════════════════════

class MovementType(Enum):
    PURCHASE = "PURCHASE"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"

    @classmethod
    def parse(cls, value: Any) -> "MovementType":
        """Parse an external name. Unknown names raise ValueError."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"movement type '{value}' not valid.")

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def is_capacity_bound(self) -> bool:
        """TRANSFER and RETURN always take stock out of a location."""
        return self in (MovementType.TRANSFER, MovementType.RETURN)


_LABELS = {
    MovementType.PURCHASE: "purchase entry",
    MovementType.TRANSFER: "transfer",
    MovementType.ADJUSTMENT: "adjustment",
    MovementType.RETURN: "return",
}


class ExitReason(Enum):
    """Why stock left on a RETURN movement."""
    CONSUMPTION = "CONSUMPTION"
    SUPPLIER_RETURN = "SUPPLIER_RETURN"

    @classmethod
    def parse(cls, value: Any) -> "ExitReason":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"exit reason '{value}' not valid.")


# ══════════════════════════════════════════════════════════════
# FORM INPUT
# ══════════════════════════════════════════════════════════════

def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    """First non-None value among snake_case / camelCase aliases."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class DetailForm:
    """One detail line as entered. max_quantity is the caller's availability snapshot."""
    quantity: Any = None
    supply_id: Any = None
    supplier_item_id: Any = None
    batch_id: Any = None
    batch_number: Any = None
    expiration_date: Any = None
    notes: Any = None
    max_quantity: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DetailForm":
        if not isinstance(data, Mapping):
            raise ValueError("each detail must be an object.")
        return cls(
            quantity=data.get("quantity"),
            supply_id=_pick(data, "supply_id", "supplyId"),
            supplier_item_id=_pick(data, "supplier_item_id", "supplierItemId"),
            batch_id=_pick(data, "batch_id", "batchId"),
            batch_number=_pick(data, "batch_number", "batchNumber"),
            expiration_date=_pick(data, "expiration_date", "expirationDate"),
            notes=data.get("notes"),
            max_quantity=_pick(data, "max_quantity", "maxQuantity"),
        )

    def reference_id(self, movement_type: MovementType) -> Optional[int]:
        """Catalog reference for the line: supply, or supplier item on RETURN."""
        supply_id = to_identifier(self.supply_id)
        if supply_id is not None:
            return supply_id
        if movement_type is MovementType.RETURN:
            return to_identifier(self.supplier_item_id)
        return None


@dataclass(frozen=True)
class MovementForm:
    """
    Header plus detail lines for one proposed movement.

    location_id is the form's main location: destination for
    PURCHASE/TRANSFER, the single location for ADJUSTMENT and
    the origin for RETURN when origin_location_id is absent.

    The supply_id/quantity/batch_number/expiration_date/detail_notes
    header fields describe a single implicit line, used only when
    `details` is empty.
    """
    location_id: Any = None
    origin_location_id: Any = None
    supplier_id: Any = None
    reason: Any = None
    notes: Any = None
    exit_reason: Any = None
    details: Tuple[DetailForm, ...] = field(default_factory=tuple)
    supply_id: Any = None
    quantity: Any = None
    batch_number: Any = None
    expiration_date: Any = None
    detail_notes: Any = None

    def __post_init__(self):
        if not isinstance(self.details, tuple):
            raise ValueError("details must be a tuple.")
        for detail in self.details:
            if not isinstance(detail, DetailForm):
                raise ValueError("details must contain DetailForm entries.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MovementForm":
        if not isinstance(data, Mapping):
            raise ValueError("movement form must be an object.")
        raw_details = data.get("details") or []
        if not isinstance(raw_details, (list, tuple)):
            raise ValueError("details must be a list.")
        return cls(
            location_id=_pick(data, "location_id", "locationId"),
            origin_location_id=_pick(data, "origin_location_id", "originLocationId"),
            supplier_id=_pick(data, "supplier_id", "supplierId"),
            reason=data.get("reason"),
            notes=data.get("notes"),
            exit_reason=_pick(data, "exit_reason", "exitReason"),
            details=tuple(DetailForm.from_dict(item) for item in raw_details),
            supply_id=_pick(data, "supply_id", "supplyId"),
            quantity=data.get("quantity"),
            batch_number=_pick(data, "batch_number", "batchNumber"),
            expiration_date=_pick(data, "expiration_date", "expirationDate"),
            detail_notes=_pick(data, "detail_notes", "detailNotes"),
        )

    def lines(self) -> Tuple[DetailForm, ...]:
        """
        Effective detail lines.

        Explicit lines inherit header supply/batch/expiration when they
        leave them unset. With no explicit lines, a non-blank header
        quantity forms the single implicit line.
        """
        if self.details:
            return tuple(
                replace(
                    detail,
                    supply_id=(
                        detail.supply_id if detail.supply_id is not None else self.supply_id
                    ),
                    batch_number=(
                        detail.batch_number
                        if detail.batch_number is not None
                        else self.batch_number
                    ),
                    expiration_date=(
                        detail.expiration_date
                        if detail.expiration_date is not None
                        else self.expiration_date
                    ),
                )
                for detail in self.details
            )
        if is_blank(self.quantity):
            return tuple()
        return (
            DetailForm(
                quantity=self.quantity,
                supply_id=self.supply_id,
                batch_number=self.batch_number,
                expiration_date=self.expiration_date,
                notes=self.detail_notes,
            ),
        )

    def source_location_id(self, movement_type: MovementType) -> Optional[int]:
        """Location stock leaves from, for capacity purposes."""
        if movement_type is MovementType.TRANSFER:
            return to_identifier(self.origin_location_id)
        if movement_type is MovementType.RETURN:
            return to_identifier(self.origin_location_id) or to_identifier(self.location_id)
        if movement_type is MovementType.ADJUSTMENT:
            return to_identifier(self.location_id) or to_identifier(self.origin_location_id)
        return None

    def destination_location_id(self, movement_type: MovementType) -> Optional[int]:
        if movement_type is MovementType.TRANSFER:
            return to_identifier(self.location_id)
        if movement_type in (MovementType.PURCHASE, MovementType.ADJUSTMENT):
            return to_identifier(self.location_id) or to_identifier(self.origin_location_id)
        return None


__all__ = [
    "DetailForm",
    "ExitReason",
    "MovementForm",
    "MovementType",
]
