"""
Stockflow Stock Movements - Strategy Resolver
===============================================
One strategy per movement type: validate, build_payload, submit,
success_message.

The table is built once at startup and checked for totality: a
missing MovementType member is a ProgrammingError at build time,
not a KeyError at request time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional

from core.commands.outcomes import ValidationResult
from core.time.clock import Clock
from engines.stock_movements.catalog import CatalogSnapshot
from engines.stock_movements.commands import MovementForm, MovementType
from engines.stock_movements.errors import ProgrammingError
from engines.stock_movements.payloads import (
    PAYLOAD_BUILDERS,
    StockMovementRequest,
    build_return_payload,
)
from engines.stock_movements.policies import validate
from engines.stock_movements.settings import EngineSettings

logger = logging.getLogger("stockflow.strategies")


SUCCESS_MESSAGES = {
    MovementType.PURCHASE: "Purchase entry registered successfully.",
    MovementType.TRANSFER: (
        "Transfer note generated. Pending confirmation at the destination location."
    ),
    MovementType.ADJUSTMENT: "Adjustment registered successfully.",
    MovementType.RETURN: "Return registered successfully.",
}


# ══════════════════════════════════════════════════════════════
# STRATEGY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MovementStrategy:
    movement_type: MovementType
    builder: Callable[[MovementForm, Any], StockMovementRequest]
    submitter: Callable[[StockMovementRequest], Any]
    message: str

    @property
    def label(self) -> str:
        return self.movement_type.label

    def validate(
        self,
        form: MovementForm,
        *,
        catalog: Optional[CatalogSnapshot] = None,
        today: Optional[date] = None,
        clock: Optional[Clock] = None,
    ) -> ValidationResult:
        return validate(
            self.movement_type, form, catalog=catalog, today=today, clock=clock,
        )

    def build_payload(self, form: MovementForm, user_id: Any) -> StockMovementRequest:
        return self.builder(form, user_id)

    def submit(self, payload: StockMovementRequest) -> Any:
        if payload.movement_type is not self.movement_type:
            raise ProgrammingError(
                f"{self.movement_type.value} strategy cannot submit a "
                f"{payload.movement_type.value} payload."
            )
        return self.submitter(payload)

    def success_message(self, response: Any = None) -> str:
        return self.message


# ══════════════════════════════════════════════════════════════
# TABLE CONSTRUCTION
# ══════════════════════════════════════════════════════════════

def build_strategy_table(
    gateway, settings: Optional[EngineSettings] = None,
) -> Dict[MovementType, MovementStrategy]:
    """Build the strategy for every MovementType, bound to `gateway`."""
    settings = settings or EngineSettings()
    builders = dict(PAYLOAD_BUILDERS)
    builders[MovementType.RETURN] = partial(
        build_return_payload, default_exit_reason=settings.default_exit_reason,
    )
    table = {
        movement_type: MovementStrategy(
            movement_type=movement_type,
            builder=builders[movement_type],
            submitter=gateway.submit,
            message=SUCCESS_MESSAGES[movement_type],
        )
        for movement_type in MovementType
    }
    logger.debug(f"Built strategy table for {sorted(t.value for t in table)}")
    return table


class StrategyResolver:
    """Total map MovementType -> MovementStrategy."""

    def __init__(self, table: Mapping[MovementType, MovementStrategy]):
        missing = [t.value for t in MovementType if t not in table]
        if missing:
            raise ProgrammingError(f"Strategy table missing movement types: {missing}")
        for movement_type, strategy in table.items():
            if strategy.movement_type is not movement_type:
                raise ProgrammingError(
                    f"Strategy for {movement_type.value} is registered as "
                    f"{strategy.movement_type.value}."
                )
        self._table = dict(table)

    @classmethod
    def for_gateway(
        cls, gateway, settings: Optional[EngineSettings] = None,
    ) -> "StrategyResolver":
        return cls(build_strategy_table(gateway, settings))

    def resolve(self, movement_type: MovementType) -> MovementStrategy:
        if not isinstance(movement_type, MovementType):
            raise ProgrammingError(f"Unrecognized movement type: {movement_type!r}")
        return self._table[movement_type]
