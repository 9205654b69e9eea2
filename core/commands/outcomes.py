"""
Stockflow Command Layer - Validation Result Contract
======================================================
Every validation produces exactly one result.

valid   -> no reason, no message.
invalid -> reason is mandatory; message mirrors reason.message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.commands.rejection import RejectionReason


@dataclass(frozen=True)
class ValidationResult:
    """
    Pure result of validating a movement form.

    Invariants:
        - valid + reason is not None -> ValueError
        - invalid + reason is None -> ValueError
    """

    valid: bool
    reason: Optional[RejectionReason] = None

    def __post_init__(self):
        if not isinstance(self.valid, bool):
            raise ValueError("valid must be a bool.")

        if self.valid and self.reason is not None:
            raise ValueError("A valid result must NOT include a RejectionReason.")

        if not self.valid and self.reason is None:
            raise ValueError(
                "An invalid result must include a RejectionReason. "
                "No silent rejections allowed."
            )

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "ValidationResult":
        return cls(valid=False, reason=reason)

    @property
    def message(self) -> Optional[str]:
        return None if self.reason is None else self.reason.message

    @property
    def code(self) -> Optional[str]:
        return None if self.reason is None else self.reason.code

    def to_dict(self) -> dict:
        data = {"valid": self.valid}
        if self.reason is not None:
            data["message"] = self.reason.message
            data["reason"] = self.reason.to_dict()
        return data
