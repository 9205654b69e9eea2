"""
Stockflow Stock Movements - Error Hierarchy
=============================================
Validation failures are values (RejectionReason). These classes
exist for the seams where an exception is the right channel:

- ValidationError / CapacityError: raised on request by callers
  that prefer exceptions (raise_for_rejection).
- SubmissionError: the Submission Gateway refused or failed.
  Its message is the gateway's own, never a generic one.
- ProgrammingError: an integration bug, e.g. an unknown movement
  type reaching the strategy resolver. Not recoverable.
"""

from __future__ import annotations

from typing import Optional

from core.commands.outcomes import ValidationResult
from core.commands.rejection import RejectionReason


class StockMovementError(Exception):
    """Base error for the stock movement engine."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class ValidationError(StockMovementError):
    """A movement failed a validation rule. Not retryable."""

    def __init__(self, message: str, code: str = "", reason: Optional[RejectionReason] = None):
        super().__init__(message, retryable=False)
        self.code = code
        self.reason = reason


class CapacityError(ValidationError):
    """A detail quantity exceeds the available stock it was checked against."""


class SubmissionError(StockMovementError):
    """The Submission Gateway failed (network, conflict, business rejection)."""

    def __init__(self, message: str, status: Optional[int] = None, code: str = ""):
        super().__init__(message, retryable=False)
        self.status = status
        self.code = code


class ProgrammingError(StockMovementError):
    """Integration bug. Must not happen in a correct deployment."""


def error_for_result(result: ValidationResult) -> Optional[ValidationError]:
    """Map an invalid result to its exception, or None when valid."""
    reason = result.reason
    if reason is None:
        return None
    error_cls = CapacityError if reason.is_capacity else ValidationError
    return error_cls(reason.message, code=reason.code, reason=reason)


def raise_for_rejection(result: ValidationResult) -> None:
    error = error_for_result(result)
    if error is not None:
        raise error
