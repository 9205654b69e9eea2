"""
Stockflow Stock Movement Engine
================================
Validate, build and submit stock movements (PURCHASE, TRANSFER,
ADJUSTMENT, RETURN) against a read-only catalog snapshot.
"""

from engines.stock_movements.availability import (
    BatchAvailability,
    SupplyAvailability,
    cap_quantity,
    reconcile_detail,
    reconcile_form,
    resolve_batches,
    supplies_at_location,
)
from engines.stock_movements.catalog import (
    CatalogProvider,
    CatalogSnapshot,
    InMemoryCatalogProvider,
)
from engines.stock_movements.commands import (
    DetailForm,
    ExitReason,
    MovementForm,
    MovementType,
)
from engines.stock_movements.errors import (
    CapacityError,
    ProgrammingError,
    StockMovementError,
    SubmissionError,
    ValidationError,
    error_for_result,
    raise_for_rejection,
)
from engines.stock_movements.payloads import StockMovementRequest, build_payload
from engines.stock_movements.policies import validate
from engines.stock_movements.services import (
    InMemorySubmissionGateway,
    LedgerEntry,
    MovementOutcome,
    MovementStatus,
    StockMovementService,
)
from engines.stock_movements.settings import EngineSettings
from engines.stock_movements.strategies import (
    MovementStrategy,
    StrategyResolver,
    build_strategy_table,
)

__all__ = [
    "BatchAvailability",
    "CapacityError",
    "CatalogProvider",
    "CatalogSnapshot",
    "DetailForm",
    "EngineSettings",
    "ExitReason",
    "InMemoryCatalogProvider",
    "InMemorySubmissionGateway",
    "LedgerEntry",
    "MovementForm",
    "MovementOutcome",
    "MovementStatus",
    "MovementStrategy",
    "MovementType",
    "ProgrammingError",
    "StockMovementError",
    "StockMovementRequest",
    "StockMovementService",
    "StrategyResolver",
    "SubmissionError",
    "SupplyAvailability",
    "ValidationError",
    "build_payload",
    "build_strategy_table",
    "cap_quantity",
    "error_for_result",
    "raise_for_rejection",
    "reconcile_detail",
    "reconcile_form",
    "resolve_batches",
    "supplies_at_location",
    "validate",
]
