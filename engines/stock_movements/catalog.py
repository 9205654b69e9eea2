"""
Stockflow Stock Movements - Catalog Snapshot
==============================================
Read-only view of locations, supplies, suppliers and per-location
batch inventories, as supplied by the Catalog Provider.

The engine never mutates a snapshot. All collections are tuples;
a fresh snapshot replaces the old one after stock changes.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Tuple, Union

from engines.stock_movements.values import (
    format_date,
    parse_date,
    to_decimal,
    to_identifier,
    to_json_number,
)


def _required_id(data: Mapping[str, Any], *keys: str) -> int:
    for key in keys:
        if key in data:
            value = to_identifier(data[key])
            if value is None:
                raise ValueError(f"{key} must be a positive integer id.")
            return value
    raise ValueError(f"{keys[0]} is required.")


def _optional_id(data: Mapping[str, Any], *keys: str) -> Optional[int]:
    for key in keys:
        if data.get(key) is not None:
            return to_identifier(data[key])
    return None


# ══════════════════════════════════════════════════════════════
# CATALOG RECORDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Location:
    location_id: int
    name: str
    location_type: str = ""
    address: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Location":
        return cls(
            location_id=_required_id(data, "id", "locationId"),
            name=str(data.get("name") or ""),
            location_type=str(data.get("locationType") or data.get("type") or ""),
            address=data.get("address"),
            is_active=bool(data.get("isActive", True)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.location_id,
            "name": self.name,
            "locationType": self.location_type,
            "address": self.address,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class Supply:
    supply_id: int
    name: str
    sku: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Supply":
        return cls(
            supply_id=_required_id(data, "id", "supplyId"),
            name=str(data.get("name") or ""),
            sku=data.get("sku"),
            is_active=bool(data.get("isActive", True)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.supply_id,
            "name": self.name,
            "sku": self.sku,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class Supplier:
    supplier_id: int
    name: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Supplier":
        return cls(
            supplier_id=_required_id(data, "id", "supplierId"),
            name=str(data.get("name") or data.get("companyName") or ""),
        )

    def to_dict(self) -> dict:
        return {"id": self.supplier_id, "name": self.name}


@dataclass(frozen=True)
class SupplierItem:
    """A supplier's catalog entry for a supply. RETURN lines may reference it."""
    supplier_item_id: int
    supplier_id: int
    supply_id: int
    name: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplierItem":
        return cls(
            supplier_item_id=_required_id(data, "id", "supplierItemId"),
            supplier_id=_required_id(data, "supplierId"),
            supply_id=_required_id(data, "supplyId"),
            name=str(data.get("name") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.supplier_item_id,
            "supplierId": self.supplier_id,
            "supplyId": self.supply_id,
            "name": self.name,
        }


@dataclass(frozen=True)
class Batch:
    """A lot of one supply at one location. quantity is the on-hand count."""
    batch_id: int
    batch_number: str
    quantity: Decimal
    expiration_date: Optional[date] = None
    is_active: bool = True

    def __post_init__(self):
        if not isinstance(self.quantity, Decimal):
            raise ValueError("quantity must be Decimal.")

    @property
    def is_available(self) -> bool:
        return self.quantity > 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Batch":
        quantity = to_decimal(data.get("quantity"))
        if quantity is None:
            raise ValueError("batch quantity must be numeric.")
        return cls(
            batch_id=_required_id(data, "batchId", "id"),
            batch_number=str(data.get("batchNumber") or data.get("batchCode") or ""),
            quantity=quantity,
            expiration_date=parse_date(data.get("expirationDate")),
            is_active=bool(data.get("isActive", True)),
        )

    def to_dict(self) -> dict:
        data = {
            "batchId": self.batch_id,
            "batchNumber": self.batch_number,
            "expirationDate": format_date(self.expiration_date),
            "quantity": to_json_number(self.quantity),
        }
        if not self.is_active:
            data["isActive"] = False
        return data


@dataclass(frozen=True)
class SupplyStock:
    """Batches of one supply held at one location."""
    supply_id: int
    batches: Tuple[Batch, ...] = field(default_factory=tuple)
    supply_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SupplyStock":
        return cls(
            supply_id=_required_id(data, "supplyId"),
            batches=tuple(Batch.from_dict(b) for b in data.get("batches") or ()),
            supply_name=data.get("supplyName"),
        )

    def to_dict(self) -> dict:
        data = {
            "supplyId": self.supply_id,
            "batches": [b.to_dict() for b in self.batches],
        }
        if self.supply_name is not None:
            data["supplyName"] = self.supply_name
        return data


@dataclass(frozen=True)
class LocationStock:
    location_id: int
    supplies: Tuple[SupplyStock, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LocationStock":
        return cls(
            location_id=_required_id(data, "locationId"),
            supplies=tuple(SupplyStock.from_dict(s) for s in data.get("supplies") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "locationId": self.location_id,
            "supplies": [s.to_dict() for s in self.supplies],
        }


# ══════════════════════════════════════════════════════════════
# SNAPSHOT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CatalogSnapshot:
    locations: Tuple[Location, ...] = field(default_factory=tuple)
    supplies: Tuple[Supply, ...] = field(default_factory=tuple)
    suppliers: Tuple[Supplier, ...] = field(default_factory=tuple)
    supplier_items: Tuple[SupplierItem, ...] = field(default_factory=tuple)
    stock_by_location: Tuple[LocationStock, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogSnapshot":
        if not isinstance(data, Mapping):
            raise ValueError("catalog snapshot must be an object.")
        return cls(
            locations=tuple(Location.from_dict(x) for x in data.get("locations") or ()),
            supplies=tuple(Supply.from_dict(x) for x in data.get("supplies") or ()),
            suppliers=tuple(Supplier.from_dict(x) for x in data.get("suppliers") or ()),
            supplier_items=tuple(
                SupplierItem.from_dict(x) for x in data.get("supplierItems") or ()
            ),
            stock_by_location=tuple(
                LocationStock.from_dict(x) for x in data.get("stockByLocation") or ()
            ),
        )

    def to_dict(self) -> dict:
        data = {
            "locations": [x.to_dict() for x in self.locations],
            "supplies": [x.to_dict() for x in self.supplies],
            "suppliers": [x.to_dict() for x in self.suppliers],
            "stockByLocation": [x.to_dict() for x in self.stock_by_location],
        }
        if self.supplier_items:
            data["supplierItems"] = [x.to_dict() for x in self.supplier_items]
        return data

    # ── Lookups ───────────────────────────────────────────────

    def location(self, location_id: Optional[int]) -> Optional[Location]:
        return next((x for x in self.locations if x.location_id == location_id), None)

    def supply(self, supply_id: Optional[int]) -> Optional[Supply]:
        return next((x for x in self.supplies if x.supply_id == supply_id), None)

    def supplier(self, supplier_id: Optional[int]) -> Optional[Supplier]:
        return next((x for x in self.suppliers if x.supplier_id == supplier_id), None)

    def supplier_item(self, supplier_item_id: Optional[int]) -> Optional[SupplierItem]:
        return next(
            (x for x in self.supplier_items if x.supplier_item_id == supplier_item_id),
            None,
        )

    def location_stock(self, location_id: Optional[int]) -> Optional[LocationStock]:
        return next(
            (x for x in self.stock_by_location if x.location_id == location_id),
            None,
        )

    def supply_stock(
        self, location_id: Optional[int], supply_id: Optional[int],
    ) -> Optional[SupplyStock]:
        stock = self.location_stock(location_id)
        if stock is None:
            return None
        return next((s for s in stock.supplies if s.supply_id == supply_id), None)


# ══════════════════════════════════════════════════════════════
# CATALOG PROVIDER
# ══════════════════════════════════════════════════════════════

class CatalogProvider(Protocol):
    def snapshot(self) -> CatalogSnapshot:
        ...


class InMemoryCatalogProvider:
    """Holds the latest snapshot. Callers replace it after stock changes."""

    def __init__(self, snapshot: Optional[CatalogSnapshot] = None):
        self._snapshot = snapshot or CatalogSnapshot()
        self._lock = threading.Lock()

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "InMemoryCatalogProvider":
        with open(path, encoding="utf-8") as fh:
            return cls(CatalogSnapshot.from_dict(json.load(fh)))

    def snapshot(self) -> CatalogSnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: CatalogSnapshot) -> None:
        if not isinstance(snapshot, CatalogSnapshot):
            raise ValueError("snapshot must be CatalogSnapshot.")
        with self._lock:
            self._snapshot = snapshot
