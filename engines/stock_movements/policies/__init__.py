"""
Stockflow Stock Movements - Validation Policies
=================================================
Rule checks for a proposed movement. Each policy returns a
RejectionReason or None; `validate` runs them in a fixed order
and the first rejection wins.

Order:
    1. required_references_policy
    2. details_present_policy
    3. numeric_quantity_policy
    4. quantity_sign_policy
    5. supply_reference_policy
    6. expiration_date_policy
    7. capacity_policy

Policies are pure. max_quantity on each detail is the caller's
availability snapshot; capacity_policy trusts it but always checks
it, since stock can move between resolution and submission.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Hashable, Optional, Tuple

from core.commands.outcomes import ValidationResult
from core.commands.rejection import CATEGORY_CAPACITY, ReasonCode, RejectionReason
from core.time.clock import Clock, get_default_clock
from engines.stock_movements.catalog import CatalogSnapshot
from engines.stock_movements.commands import (
    DetailForm,
    ExitReason,
    MovementForm,
    MovementType,
)
from engines.stock_movements.errors import ProgrammingError
from engines.stock_movements.values import (
    is_blank,
    parse_date,
    to_decimal,
    to_identifier,
    to_json_number,
)


def _reject(code: str, message: str, policy_name: str, **kwargs) -> RejectionReason:
    return RejectionReason(code=code, message=message, policy_name=policy_name, **kwargs)


# ══════════════════════════════════════════════════════════════
# 1. REQUIRED REFERENCES
# ══════════════════════════════════════════════════════════════

def _missing_location(
    movement_type: MovementType, form: MovementForm,
) -> Optional[RejectionReason]:
    name = "required_references_policy"

    if movement_type is MovementType.PURCHASE:
        if to_identifier(form.supplier_id) is None:
            return _reject(
                ReasonCode.SUPPLIER_REQUIRED,
                "A supplier must be selected to register a purchase entry.",
                name,
            )
        if form.destination_location_id(movement_type) is None:
            return _reject(
                ReasonCode.LOCATION_REQUIRED,
                "A destination location must be selected to register a purchase entry.",
                name,
            )

    elif movement_type is MovementType.TRANSFER:
        origin = to_identifier(form.origin_location_id)
        destination = to_identifier(form.location_id)
        if origin is None or destination is None:
            return _reject(
                ReasonCode.LOCATION_REQUIRED,
                "Valid origin and destination locations must be selected.",
                name,
            )
        if origin == destination:
            return _reject(
                ReasonCode.SAME_LOCATION_TRANSFER,
                "Origin and destination locations must be different.",
                name,
            )

    elif movement_type is MovementType.RETURN:
        if form.source_location_id(movement_type) is None:
            return _reject(
                ReasonCode.LOCATION_REQUIRED,
                "An origin location must be selected to register a return.",
                name,
            )

    elif movement_type is MovementType.ADJUSTMENT:
        if form.source_location_id(movement_type) is None:
            return _reject(
                ReasonCode.LOCATION_REQUIRED,
                "A location must be selected to register an adjustment.",
                name,
            )

    return None


def required_references_policy(
    movement_type: MovementType,
    form: MovementForm,
    catalog: Optional[CatalogSnapshot] = None,
) -> Optional[RejectionReason]:
    """Header references per movement type, then a non-blank reason."""
    rejection = _missing_location(movement_type, form)
    if rejection is not None:
        return rejection

    if is_blank(form.reason):
        return _reject(
            ReasonCode.REASON_REQUIRED,
            "A reason is required.",
            "required_references_policy",
        )

    if movement_type is MovementType.RETURN and not is_blank(form.exit_reason):
        try:
            ExitReason.parse(form.exit_reason)
        except ValueError:
            return _reject(
                ReasonCode.INVALID_EXIT_REASON,
                f"Exit reason '{form.exit_reason}' is not valid.",
                "required_references_policy",
            )

    if catalog is None:
        return None

    referenced = {
        form.source_location_id(movement_type),
        form.destination_location_id(movement_type),
    }
    for location_id in sorted(x for x in referenced if x is not None):
        if catalog.location(location_id) is None:
            return _reject(
                ReasonCode.UNKNOWN_LOCATION,
                f"Location {location_id} does not exist in the catalog.",
                "required_references_policy",
            )

    supplier_id = to_identifier(form.supplier_id)
    if (
        movement_type in (MovementType.PURCHASE, MovementType.RETURN)
        and supplier_id is not None
        and catalog.supplier(supplier_id) is None
    ):
        return _reject(
            ReasonCode.UNKNOWN_SUPPLIER,
            f"Supplier {supplier_id} does not exist in the catalog.",
            "required_references_policy",
        )

    return None


# ══════════════════════════════════════════════════════════════
# 2-4. QUANTITIES
# ══════════════════════════════════════════════════════════════

def details_present_policy(
    lines: Tuple[DetailForm, ...],
) -> Optional[RejectionReason]:
    if not lines:
        return _reject(
            ReasonCode.DETAILS_REQUIRED,
            "At least one detail is required.",
            "details_present_policy",
        )
    return None


def numeric_quantity_policy(
    lines: Tuple[DetailForm, ...],
) -> Optional[RejectionReason]:
    for index, line in enumerate(lines):
        if to_decimal(line.quantity) is None:
            return _reject(
                ReasonCode.INVALID_QUANTITY_TYPE,
                "Detail quantities must be numeric.",
                "numeric_quantity_policy",
                detail_index=index,
            )
    return None


def quantity_sign_policy(
    movement_type: MovementType,
    lines: Tuple[DetailForm, ...],
) -> Optional[RejectionReason]:
    """ADJUSTMENT forbids zero; every other type needs a positive quantity."""
    for index, line in enumerate(lines):
        quantity = to_decimal(line.quantity)
        if movement_type is MovementType.ADJUSTMENT:
            if quantity == 0:
                return _reject(
                    ReasonCode.ZERO_ADJUSTMENT,
                    "Adjustment quantity cannot be zero.",
                    "quantity_sign_policy",
                    detail_index=index,
                )
        elif quantity <= 0:
            return _reject(
                ReasonCode.NON_POSITIVE_QUANTITY,
                f"Quantity must be greater than zero for a {movement_type.label}.",
                "quantity_sign_policy",
                detail_index=index,
            )
    return None


# ══════════════════════════════════════════════════════════════
# 5. SUPPLY REFERENCES
# ══════════════════════════════════════════════════════════════

def supply_reference_policy(
    movement_type: MovementType,
    lines: Tuple[DetailForm, ...],
    catalog: Optional[CatalogSnapshot] = None,
) -> Optional[RejectionReason]:
    name = "supply_reference_policy"
    for index, line in enumerate(lines):
        if line.reference_id(movement_type) is None:
            return _reject(
                ReasonCode.SUPPLY_REQUIRED,
                (
                    "Each detail must reference a supply or supplier item."
                    if movement_type is MovementType.RETURN
                    else "Each detail must reference a supply."
                ),
                name,
                detail_index=index,
            )

        if catalog is None:
            continue

        supply_id = to_identifier(line.supply_id)
        if supply_id is not None:
            if catalog.supply(supply_id) is None:
                return _reject(
                    ReasonCode.UNKNOWN_SUPPLY,
                    f"Supply {supply_id} does not exist in the catalog.",
                    name,
                    detail_index=index,
                )
            continue

        supplier_item_id = to_identifier(line.supplier_item_id)
        if catalog.supplier_item(supplier_item_id) is None:
            return _reject(
                ReasonCode.UNKNOWN_SUPPLY,
                f"Supplier item {supplier_item_id} does not exist in the catalog.",
                name,
                detail_index=index,
            )
    return None


# ══════════════════════════════════════════════════════════════
# 6. EXPIRATION DATES
# ══════════════════════════════════════════════════════════════

def _is_inbound(movement_type: MovementType, line: DetailForm) -> bool:
    """PURCHASE lines and positive ADJUSTMENT lines bring stock in."""
    if movement_type is MovementType.PURCHASE:
        return True
    if movement_type is MovementType.ADJUSTMENT:
        quantity = to_decimal(line.quantity)
        return quantity is not None and quantity > 0
    return False


def expiration_date_policy(
    movement_type: MovementType,
    lines: Tuple[DetailForm, ...],
    today: date,
) -> Optional[RejectionReason]:
    """
    A provided expiration date must parse. Inbound lines must not
    carry a date before today; outbound lines may move expired lots.
    """
    for index, line in enumerate(lines):
        try:
            expiration = parse_date(line.expiration_date)
        except ValueError:
            return _reject(
                ReasonCode.INVALID_EXPIRATION_DATE,
                "Expiration date must be a valid date (YYYY-MM-DD).",
                "expiration_date_policy",
                detail_index=index,
            )
        if expiration is None or not _is_inbound(movement_type, line):
            continue
        if expiration < today:
            return _reject(
                ReasonCode.EXPIRED_DATE,
                "Expiration date cannot be earlier than today.",
                "expiration_date_policy",
                detail_index=index,
            )
    return None


# ══════════════════════════════════════════════════════════════
# 7. CAPACITY
# ══════════════════════════════════════════════════════════════

def _outbound_quantity(
    movement_type: MovementType, line: DetailForm,
) -> Optional[Decimal]:
    quantity = to_decimal(line.quantity)
    if movement_type.is_capacity_bound:
        return quantity
    if movement_type is MovementType.ADJUSTMENT and quantity < 0:
        return -quantity
    return None


def _supply_key(line: DetailForm) -> Hashable:
    supply_id = to_identifier(line.supply_id)
    if supply_id is not None:
        return supply_id
    return ("item", to_identifier(line.supplier_item_id))


def _batch_key(line: DetailForm) -> Optional[Hashable]:
    batch_id = to_identifier(line.batch_id)
    if batch_id is not None:
        return batch_id
    if not is_blank(line.batch_number):
        return ("number", str(line.batch_number).strip())
    return None


def _tightest(current: Optional[Decimal], limit: Decimal) -> Decimal:
    return limit if current is None or limit < current else current


def capacity_policy(
    movement_type: MovementType,
    lines: Tuple[DetailForm, ...],
) -> Optional[RejectionReason]:
    """
    Outbound quantity must not exceed the available max_quantity.

    Applies to TRANSFER, RETURN and negative ADJUSTMENT. The bound is
    inclusive. Lines drawing on the same stock are summed: lines
    naming a batch count against that batch, and every line of a
    supply counts against the supply's aggregate whenever a line of
    that supply without a batch carries a max_quantity. Lines without
    max_quantity are not capped on their own.
    """
    # Aggregate limits come from lines that name no batch.
    supply_limits: Dict[Hashable, Decimal] = {}
    batch_limits: Dict[Tuple[Hashable, Hashable], Decimal] = {}
    for line in lines:
        limit = to_decimal(line.max_quantity)
        if limit is None or _outbound_quantity(movement_type, line) is None:
            continue
        supply = _supply_key(line)
        batch = _batch_key(line)
        if batch is None:
            supply_limits[supply] = _tightest(supply_limits.get(supply), limit)
        else:
            key = (supply, batch)
            batch_limits[key] = _tightest(batch_limits.get(key), limit)

    supply_totals: Dict[Hashable, Decimal] = {}
    batch_totals: Dict[Tuple[Hashable, Hashable], Decimal] = {}
    for index, line in enumerate(lines):
        outbound = _outbound_quantity(movement_type, line)
        if outbound is None:
            continue
        supply = _supply_key(line)
        batch = _batch_key(line)
        supply_totals[supply] = supply_totals.get(supply, Decimal("0")) + outbound

        checks = []
        if batch is not None:
            key = (supply, batch)
            batch_totals[key] = batch_totals.get(key, Decimal("0")) + outbound
            checks.append((batch_totals[key], batch_limits.get(key)))
        checks.append((supply_totals[supply], supply_limits.get(supply)))

        for total, limit in checks:
            if limit is None or total <= limit:
                continue
            if total == outbound:
                message = (
                    f"Quantity {to_json_number(outbound)} exceeds available stock "
                    f"({to_json_number(limit)}) on detail {index + 1}."
                )
            else:
                message = (
                    f"Total quantity {to_json_number(total)} exceeds available stock "
                    f"({to_json_number(limit)}) on detail {index + 1}."
                )
            return _reject(
                ReasonCode.INSUFFICIENT_STOCK,
                message,
                "capacity_policy",
                category=CATEGORY_CAPACITY,
                detail_index=index,
            )
    return None


# ══════════════════════════════════════════════════════════════
# VALIDATE
# ══════════════════════════════════════════════════════════════

def validate(
    movement_type: MovementType,
    form: MovementForm,
    *,
    catalog: Optional[CatalogSnapshot] = None,
    today: Optional[date] = None,
    clock: Optional[Clock] = None,
) -> ValidationResult:
    """Run every policy in order; the first rejection wins."""
    if not isinstance(movement_type, MovementType):
        raise ProgrammingError(f"Unrecognized movement type: {movement_type!r}")
    if not isinstance(form, MovementForm):
        raise ProgrammingError("form must be MovementForm.")

    if today is None:
        today = (clock or get_default_clock()).today()

    lines = form.lines()
    checks = (
        lambda: required_references_policy(movement_type, form, catalog),
        lambda: details_present_policy(lines),
        lambda: numeric_quantity_policy(lines),
        lambda: quantity_sign_policy(movement_type, lines),
        lambda: supply_reference_policy(movement_type, lines, catalog),
        lambda: expiration_date_policy(movement_type, lines, today),
        lambda: capacity_policy(movement_type, lines),
    )
    for check in checks:
        rejection = check()
        if rejection is not None:
            return ValidationResult.reject(rejection)
    return ValidationResult.ok()


__all__ = [
    "capacity_policy",
    "details_present_policy",
    "expiration_date_policy",
    "numeric_quantity_policy",
    "quantity_sign_policy",
    "required_references_policy",
    "supply_reference_policy",
    "validate",
]
