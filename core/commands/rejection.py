"""
Stockflow Command Layer - Rejection Model
===========================================
Structured rejection reasons for refused stock movements.

A rejection is a value, not an exception. Validators return it,
services forward it, adapters serialize it.

Every rejection must be:
- Deterministic (same form + snapshot -> same rejection)
- Machine-readable (code, category)
- Human-readable (message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


# ══════════════════════════════════════════════════════════════
# REJECTION CATEGORIES
# ══════════════════════════════════════════════════════════════

CATEGORY_VALIDATION = "VALIDATION"
CATEGORY_CAPACITY = "CAPACITY"

VALID_CATEGORIES = frozenset({CATEGORY_VALIDATION, CATEGORY_CAPACITY})


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for a refused movement.

    Fields:
        code:         Machine-readable code (see ReasonCode).
        message:      Human-readable explanation.
        policy_name:  Name of the rule that refused the movement.
        category:     VALIDATION, or CAPACITY for stock-cap violations.
        detail_index: Zero-based detail line that failed, if any.
    """

    code: str
    message: str
    policy_name: str
    category: str = CATEGORY_VALIDATION
    detail_index: Optional[int] = None

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

        if self.category not in VALID_CATEGORIES:
            raise ValueError(f"category '{self.category}' not valid.")

        if self.detail_index is not None and (
            not isinstance(self.detail_index, int) or self.detail_index < 0
        ):
            raise ValueError("detail_index must be int >= 0 or None.")

    @property
    def is_capacity(self) -> bool:
        return self.category == CATEGORY_CAPACITY

    def to_dict(self) -> dict:
        """Serialize for transport envelopes and audit logs."""
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
            "category": self.category,
            "detail_index": self.detail_index,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Header references ─────────────────────────────────────
    SUPPLIER_REQUIRED = "SUPPLIER_REQUIRED"
    LOCATION_REQUIRED = "LOCATION_REQUIRED"
    SAME_LOCATION_TRANSFER = "SAME_LOCATION_TRANSFER"
    REASON_REQUIRED = "REASON_REQUIRED"
    INVALID_EXIT_REASON = "INVALID_EXIT_REASON"
    UNKNOWN_LOCATION = "UNKNOWN_LOCATION"
    UNKNOWN_SUPPLIER = "UNKNOWN_SUPPLIER"

    # ── Detail lines ──────────────────────────────────────────
    DETAILS_REQUIRED = "DETAILS_REQUIRED"
    INVALID_QUANTITY_TYPE = "INVALID_QUANTITY_TYPE"
    NON_POSITIVE_QUANTITY = "NON_POSITIVE_QUANTITY"
    ZERO_ADJUSTMENT = "ZERO_ADJUSTMENT"
    SUPPLY_REQUIRED = "SUPPLY_REQUIRED"
    UNKNOWN_SUPPLY = "UNKNOWN_SUPPLY"
    INVALID_EXPIRATION_DATE = "INVALID_EXPIRATION_DATE"
    EXPIRED_DATE = "EXPIRED_DATE"

    # ── Capacity ──────────────────────────────────────────────
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
