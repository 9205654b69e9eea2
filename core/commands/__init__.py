"""
Stockflow Command Layer - Rejections and Results
==================================================
A refused movement is a first-class value, never a silent drop.
"""

from core.commands.outcomes import ValidationResult
from core.commands.rejection import (
    CATEGORY_CAPACITY,
    CATEGORY_VALIDATION,
    ReasonCode,
    RejectionReason,
)

__all__ = [
    "CATEGORY_CAPACITY",
    "CATEGORY_VALIDATION",
    "ReasonCode",
    "RejectionReason",
    "ValidationResult",
]
