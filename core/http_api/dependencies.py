"""
Stockflow HTTP API - Dependencies
=================================
Injected collaborators for handler wiring.
"""

from __future__ import annotations

from dataclasses import dataclass

from engines.stock_movements.services import StockMovementService


@dataclass(frozen=True)
class HttpApiDependencies:
    movement_service: StockMovementService

    def __post_init__(self):
        if not isinstance(self.movement_service, StockMovementService):
            raise ValueError("movement_service must be StockMovementService.")
