"""
Stockflow Stock Movements - Engine Settings
=============================================
Typed view over the STOCK_MOVEMENTS settings mapping.

Keys:
    DEFAULT_EXIT_REASON  Exit reason stamped on RETURN payloads that
                         do not carry one. Default SUPPLIER_RETURN.
    CATALOG_FIXTURE      Optional path to a catalog snapshot JSON file
                         loaded by the Django adapter wiring.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from engines.stock_movements.commands import ExitReason


@dataclass(frozen=True)
class EngineSettings:
    default_exit_reason: ExitReason = ExitReason.SUPPLIER_RETURN
    catalog_fixture: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.default_exit_reason, ExitReason):
            raise ValueError("default_exit_reason must be ExitReason.")
        if self.catalog_fixture is not None and not isinstance(self.catalog_fixture, str):
            raise ValueError("catalog_fixture must be a string path or None.")

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "EngineSettings":
        mapping = mapping or {}
        unknown = set(mapping) - {"DEFAULT_EXIT_REASON", "CATALOG_FIXTURE"}
        if unknown:
            raise ValueError(f"Unknown STOCK_MOVEMENTS keys: {sorted(unknown)}.")
        exit_reason = mapping.get("DEFAULT_EXIT_REASON")
        fixture = mapping.get("CATALOG_FIXTURE")
        return cls(
            default_exit_reason=(
                ExitReason.SUPPLIER_RETURN
                if exit_reason is None
                else ExitReason.parse(exit_reason)
            ),
            catalog_fixture=None if fixture is None else str(fixture),
        )
