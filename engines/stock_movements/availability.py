"""
Stockflow Stock Movements - Batch Availability
================================================
Pure functions over a CatalogSnapshot:

- resolve_batches: selectable batches and the max quantity that can
  leave a location for one supply.
- supplies_at_location: supplies stocked at a location.
- reconcile_detail / reconcile_form: refresh a form's max quantities
  against the current snapshot and clear batch selections that no
  longer exist.
- cap_quantity: the clamp a UI applies to a typed quantity.

Nothing here mutates caller state. Callers re-run these whenever
location, supply or batch inputs change.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Optional, Tuple

from engines.stock_movements.catalog import Batch, CatalogSnapshot
from engines.stock_movements.commands import DetailForm, MovementForm, MovementType
from engines.stock_movements.values import (
    format_date,
    is_blank,
    to_decimal,
    to_identifier,
    to_json_number,
)

ONE = Decimal("1")


# ══════════════════════════════════════════════════════════════
# RESULT TYPES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BatchAvailability:
    """
    batches:           batches with quantity > 0, catalog order.
    max_quantity:      selected batch quantity, else the aggregate;
                       None when location or supply is unset.
    selected_batch:    the requested batch, if still available.
    selection_cleared: a batch was requested but is no longer listed;
                       the caller must clear batch, expiration and
                       quantity fields that depended on it.
    """
    batches: Tuple[Batch, ...] = field(default_factory=tuple)
    max_quantity: Optional[Decimal] = None
    selected_batch: Optional[Batch] = None
    selection_cleared: bool = False

    @property
    def total_quantity(self) -> Decimal:
        return sum((b.quantity for b in self.batches), Decimal("0"))

    def to_dict(self) -> dict:
        return {
            "batches": [b.to_dict() for b in self.batches],
            "maxQuantity": (
                None if self.max_quantity is None else to_json_number(self.max_quantity)
            ),
            "selectedBatchId": (
                None if self.selected_batch is None else self.selected_batch.batch_id
            ),
            "selectionCleared": self.selection_cleared,
        }


@dataclass(frozen=True)
class SupplyAvailability:
    supply_id: int
    supply_name: Optional[str]
    available_quantity: Decimal

    def to_dict(self) -> dict:
        return {
            "supplyId": self.supply_id,
            "supplyName": self.supply_name,
            "availableQuantity": to_json_number(self.available_quantity),
        }


# ══════════════════════════════════════════════════════════════
# RESOLUTION
# ══════════════════════════════════════════════════════════════

def _find_selected(
    batches: Tuple[Batch, ...], batch_id: Any, batch_number: Any,
) -> Optional[Batch]:
    wanted_id = to_identifier(batch_id)
    if wanted_id is not None:
        return next((b for b in batches if b.batch_id == wanted_id), None)
    if not is_blank(batch_number):
        wanted_number = str(batch_number).strip()
        return next((b for b in batches if b.batch_number == wanted_number), None)
    return None


def resolve_batches(
    catalog: CatalogSnapshot,
    location_id: Any,
    supply_id: Any,
    batch_id: Any = None,
    batch_number: Any = None,
) -> BatchAvailability:
    """
    Selectable batches for (location, supply).

    A batch is selected by id, or by number when no id is given.
    A location/supply pair with no stock yields max_quantity 0, so
    outbound movements for it cannot pass the capacity check.
    """
    requested = to_identifier(batch_id) is not None or not is_blank(batch_number)
    location = to_identifier(location_id)
    supply = to_identifier(supply_id)

    if location is None or supply is None:
        return BatchAvailability(selection_cleared=requested)

    stock = catalog.supply_stock(location, supply)
    batches = tuple(b for b in (stock.batches if stock else ()) if b.is_available)
    aggregate = sum((b.quantity for b in batches), Decimal("0"))

    if not requested:
        return BatchAvailability(batches=batches, max_quantity=aggregate)

    selected = _find_selected(batches, batch_id, batch_number)
    if selected is None:
        return BatchAvailability(
            batches=batches, max_quantity=aggregate, selection_cleared=True,
        )
    return BatchAvailability(
        batches=batches, max_quantity=selected.quantity, selected_batch=selected,
    )


def supplies_at_location(
    catalog: CatalogSnapshot, location_id: Any,
) -> Tuple[SupplyAvailability, ...]:
    """Supplies listed at a location with their aggregate available quantity."""
    stock = catalog.location_stock(to_identifier(location_id))
    if stock is None:
        return tuple()
    result = []
    for supply_stock in stock.supplies:
        name = supply_stock.supply_name
        if name is None:
            supply = catalog.supply(supply_stock.supply_id)
            name = supply.name if supply else None
        available = sum(
            (b.quantity for b in supply_stock.batches if b.is_available),
            Decimal("0"),
        )
        result.append(SupplyAvailability(supply_stock.supply_id, name, available))
    return tuple(result)


# ══════════════════════════════════════════════════════════════
# FORM RECONCILIATION
# ══════════════════════════════════════════════════════════════

def _detail_supply_id(
    catalog: CatalogSnapshot, movement_type: MovementType, detail: DetailForm,
) -> Optional[int]:
    supply_id = to_identifier(detail.supply_id)
    if supply_id is not None or movement_type is not MovementType.RETURN:
        return supply_id
    item = catalog.supplier_item(to_identifier(detail.supplier_item_id))
    return item.supply_id if item else None


def _tighter_max(caller: Any, resolved: Optional[Decimal]) -> Optional[Decimal]:
    limit = to_decimal(caller)
    if limit is None:
        return resolved
    if resolved is None:
        return limit
    return min(limit, resolved)


def reconcile_detail(
    catalog: CatalogSnapshot,
    movement_type: MovementType,
    form: MovementForm,
    detail: DetailForm,
) -> DetailForm:
    """
    Return a copy of `detail` with max_quantity checked against `catalog`.

    The catalog value replaces a looser caller max_quantity. A tighter
    one, such as a delivery-note quantity on a RETURN, is kept.

    A vanished batch selection is cleared along with its expiration
    date. A surviving selection has its expiration date filled from
    the batch. PURCHASE lines are returned unchanged.
    """
    if movement_type is MovementType.PURCHASE:
        return detail

    availability = resolve_batches(
        catalog,
        form.source_location_id(movement_type),
        _detail_supply_id(catalog, movement_type, detail),
        batch_id=detail.batch_id,
        batch_number=detail.batch_number,
    )

    max_quantity = _tighter_max(detail.max_quantity, availability.max_quantity)

    if availability.selection_cleared:
        return replace(
            detail,
            batch_id=None,
            batch_number=None,
            expiration_date=None,
            max_quantity=max_quantity,
        )

    selected = availability.selected_batch
    if selected is not None:
        return replace(
            detail,
            batch_id=selected.batch_id,
            batch_number=selected.batch_number,
            expiration_date=(
                format_date(selected.expiration_date) or detail.expiration_date
            ),
            max_quantity=max_quantity,
        )

    return replace(detail, max_quantity=max_quantity)


def reconcile_form(
    catalog: CatalogSnapshot, movement_type: MovementType, form: MovementForm,
) -> MovementForm:
    """
    Reconcile every effective line of `form`.

    The result carries its lines explicitly, so the single-line header
    fields are emptied to keep them from being merged back in.
    """
    lines = form.lines()
    if not lines:
        return form
    return replace(
        form,
        details=tuple(
            reconcile_detail(catalog, movement_type, form, line) for line in lines
        ),
        supply_id=None,
        quantity=None,
        batch_number=None,
        expiration_date=None,
        detail_notes=None,
    )


# ══════════════════════════════════════════════════════════════
# QUANTITY CLAMP
# ══════════════════════════════════════════════════════════════

def cap_quantity(
    movement_type: MovementType, quantity: Any, max_quantity: Any,
) -> Optional[Decimal]:
    """
    Clamp a typed quantity against the available maximum.

    TRANSFER/RETURN: floored at 1, then capped at max, so a max
    below 1 wins over the floor.
    ADJUSTMENT: a decrement is capped at -max; increments are unbounded.
    Non-numeric input returns None; no maximum returns the input.
    """
    value = to_decimal(quantity)
    if value is None:
        return None
    limit = to_decimal(max_quantity)
    if limit is None:
        return value

    if movement_type.is_capacity_bound:
        return min(max(value, ONE), limit)

    if movement_type is MovementType.ADJUSTMENT and value < 0 and -value > limit:
        return -limit

    return value
