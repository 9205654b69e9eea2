"""
Stockflow Stock Movements - Application Service
=================================================
Orchestrates a stock movement: reconcile -> validate -> build -> submit.

The Submission Gateway is the only side effect. Its failures are
reported with the gateway's own message and are never retried here.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from core.commands.outcomes import ValidationResult
from core.commands.rejection import RejectionReason
from core.time.clock import Clock, get_default_clock
from engines.stock_movements.availability import (
    BatchAvailability,
    SupplyAvailability,
    reconcile_form,
    resolve_batches,
    supplies_at_location,
)
from engines.stock_movements.catalog import CatalogProvider, CatalogSnapshot
from engines.stock_movements.commands import MovementForm, MovementType
from engines.stock_movements.errors import ProgrammingError, SubmissionError
from engines.stock_movements.payloads import (
    MovementDetailPayload,
    StockMovementRequest,
)
from engines.stock_movements.strategies import StrategyResolver

logger = logging.getLogger("stockflow.movements")
gateway_logger = logging.getLogger("stockflow.gateway")

MOVEMENT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


# ══════════════════════════════════════════════════════════════
# LEDGER ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LedgerEntry:
    """The gateway's record of an accepted movement."""

    movement_id: int
    movement_type: MovementType
    movement_date: datetime
    details: Tuple[MovementDetailPayload, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.movement_id, int) or self.movement_id <= 0:
            raise ValueError("movement_id must be a positive int.")
        if not isinstance(self.movement_type, MovementType):
            raise ValueError("movement_type must be MovementType.")
        if not isinstance(self.movement_date, datetime):
            raise ValueError("movement_date must be datetime.")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LedgerEntry":
        return cls(
            movement_id=int(data["movementId"]),
            movement_type=MovementType.parse(data["movementType"]),
            movement_date=datetime.strptime(
                data["movementDate"], MOVEMENT_DATE_FORMAT,
            ),
            details=tuple(
                MovementDetailPayload.from_dict(d) for d in data.get("details", ())
            ),
        )

    def to_dict(self) -> dict:
        return {
            "movementId": self.movement_id,
            "movementType": self.movement_type.value,
            "movementDate": self.movement_date.strftime(MOVEMENT_DATE_FORMAT),
            "details": [d.to_dict() for d in self.details],
        }


# ══════════════════════════════════════════════════════════════
# SUBMISSION GATEWAY
# ══════════════════════════════════════════════════════════════

class SubmissionGatewayProtocol(Protocol):
    def submit(self, payload: StockMovementRequest) -> LedgerEntry:
        """Persist the movement or raise SubmissionError."""
        ...


class InMemorySubmissionGateway:
    """
    Development and test gateway.

    Assigns sequential movement ids and stamps movement dates from the
    clock. `fail_with` makes every following submit raise, to exercise
    the failure path.
    """

    def __init__(self, clock: Optional[Clock] = None, start_id: int = 1):
        self._clock = clock
        self._next_id = start_id
        self._entries: List[Tuple[StockMovementRequest, LedgerEntry]] = []
        self._failure: Optional[Tuple[str, Optional[int]]] = None
        self._lock = threading.Lock()

    def fail_with(self, message: str, status: Optional[int] = None) -> None:
        with self._lock:
            self._failure = (message, status)

    def recover(self) -> None:
        with self._lock:
            self._failure = None

    def submit(self, payload: StockMovementRequest) -> LedgerEntry:
        with self._lock:
            if self._failure is not None:
                message, status = self._failure
                gateway_logger.debug(
                    f"Refusing {payload.movement_type.value} submission: {message}"
                )
                raise SubmissionError(message, status=status)
            clock = self._clock or get_default_clock()
            entry = LedgerEntry(
                movement_id=self._next_id,
                movement_type=payload.movement_type,
                movement_date=clock.now_utc().replace(microsecond=0, tzinfo=None),
                details=payload.details,
            )
            self._next_id += 1
            self._entries.append((payload, entry))
        gateway_logger.debug(
            f"Recorded movement {entry.movement_id} ({entry.movement_type.value})"
        )
        return entry

    @property
    def submitted(self) -> Tuple[StockMovementRequest, ...]:
        with self._lock:
            return tuple(payload for payload, _ in self._entries)

    @property
    def entries(self) -> Tuple[LedgerEntry, ...]:
        with self._lock:
            return tuple(entry for _, entry in self._entries)


# ══════════════════════════════════════════════════════════════
# OUTCOME
# ══════════════════════════════════════════════════════════════

class MovementStatus(Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class MovementOutcome:
    """
    Result of create_movement.

    ACCEPTED carries the ledger entry and success message, REJECTED the
    rejection reason, FAILED the gateway's message.
    """

    status: MovementStatus
    movement_type: MovementType
    message: str
    entry: Optional[LedgerEntry] = None
    rejection: Optional[RejectionReason] = None
    payload: Optional[StockMovementRequest] = None

    def __post_init__(self):
        if self.status is MovementStatus.ACCEPTED and self.entry is None:
            raise ValueError("ACCEPTED outcome must carry a ledger entry.")
        if self.status is MovementStatus.REJECTED and self.rejection is None:
            raise ValueError("REJECTED outcome must carry a rejection reason.")
        if self.status is not MovementStatus.ACCEPTED and self.entry is not None:
            raise ValueError("Only ACCEPTED outcomes carry a ledger entry.")

    @property
    def accepted(self) -> bool:
        return self.status is MovementStatus.ACCEPTED

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "movementType": self.movement_type.value,
            "message": self.message,
        }
        if self.entry is not None:
            data["entry"] = self.entry.to_dict()
        if self.rejection is not None:
            data["reason"] = self.rejection.to_dict()
        return data


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class StockMovementService:
    """
    Stock movement application service.

    Orchestrates:
    1. Reconciling the form against the current catalog snapshot
    2. Validation (first rejection wins)
    3. Payload building
    4. Submission through the strategy's gateway
    """

    def __init__(
        self,
        strategies: StrategyResolver,
        catalog_provider: Optional[CatalogProvider] = None,
        clock: Optional[Clock] = None,
    ):
        if not isinstance(strategies, StrategyResolver):
            raise ProgrammingError("strategies must be StrategyResolver.")
        self._strategies = strategies
        self._catalog_provider = catalog_provider
        self._clock = clock

    def _snapshot(self) -> Optional[CatalogSnapshot]:
        if self._catalog_provider is None:
            return None
        return self._catalog_provider.snapshot()

    def _clock_or_default(self) -> Clock:
        return self._clock or get_default_clock()

    # ── Queries ───────────────────────────────────────────────

    def available_batches(
        self, location_id: Any, supply_id: Any, batch_id: Any = None,
    ) -> BatchAvailability:
        snapshot = self._snapshot()
        if snapshot is None:
            return BatchAvailability(selection_cleared=batch_id is not None)
        return resolve_batches(snapshot, location_id, supply_id, batch_id=batch_id)

    def available_supplies(self, location_id: Any) -> Tuple[SupplyAvailability, ...]:
        snapshot = self._snapshot()
        if snapshot is None:
            return tuple()
        return supplies_at_location(snapshot, location_id)

    # ── Validation ────────────────────────────────────────────

    def _prepare(
        self, movement_type: MovementType, form: MovementForm,
    ) -> Tuple[MovementForm, ValidationResult]:
        strategy = self._strategies.resolve(movement_type)
        snapshot = self._snapshot()
        if snapshot is not None:
            form = reconcile_form(snapshot, movement_type, form)
        result = strategy.validate(
            form, catalog=snapshot, clock=self._clock_or_default(),
        )
        return form, result

    def validate(
        self, movement_type: MovementType, form: MovementForm,
    ) -> ValidationResult:
        """Validate against the current snapshot, not the caller's max quantities."""
        _, result = self._prepare(movement_type, form)
        return result

    # ── Creation ──────────────────────────────────────────────

    def create_movement(
        self, movement_type: MovementType, form: MovementForm, *, user_id: Any,
    ) -> MovementOutcome:
        strategy = self._strategies.resolve(movement_type)
        form, result = self._prepare(movement_type, form)

        if not result.valid:
            logger.info(
                f"Rejected {movement_type.value} for user {user_id}: "
                f"{result.code} ({result.reason.policy_name})"
            )
            return MovementOutcome(
                status=MovementStatus.REJECTED,
                movement_type=movement_type,
                message=result.message,
                rejection=result.reason,
            )

        payload = strategy.build_payload(form, user_id)
        try:
            entry = strategy.submit(payload)
        except SubmissionError as exc:
            logger.warning(
                f"Submission of {movement_type.value} failed for user {user_id}: "
                f"{exc.message}"
            )
            return MovementOutcome(
                status=MovementStatus.FAILED,
                movement_type=movement_type,
                message=exc.message,
                payload=payload,
            )

        logger.info(
            f"Accepted {movement_type.value} movement {entry.movement_id} "
            f"for user {user_id} with {len(payload.details)} detail(s)"
        )
        return MovementOutcome(
            status=MovementStatus.ACCEPTED,
            movement_type=movement_type,
            message=strategy.success_message(entry),
            entry=entry,
            payload=payload,
        )


__all__ = [
    "InMemorySubmissionGateway",
    "LedgerEntry",
    "MOVEMENT_DATE_FORMAT",
    "MovementOutcome",
    "MovementStatus",
    "StockMovementService",
    "SubmissionGatewayProtocol",
]
