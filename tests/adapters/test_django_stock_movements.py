"""
Stockflow Django Adapter - Stock Movement Endpoint Tests
========================================================
Envelope shape and status mapping through the Django test client.
No database access: the adapter is wired to in-memory collaborators.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from django.test import Client

from adapters.django_api.wiring import (
    build_dependencies,
    install_dependencies,
    load_engine_settings,
)
from core.http_api.dependencies import HttpApiDependencies
from core.time.clock import FixedClock
from engines.stock_movements.catalog import CatalogSnapshot, InMemoryCatalogProvider
from engines.stock_movements.commands import ExitReason
from engines.stock_movements.services import (
    InMemorySubmissionGateway,
    StockMovementService,
)
from engines.stock_movements.strategies import StrategyResolver

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

CATALOG = {
    "locations": [{"id": 1, "name": "Central Lab"}, {"id": 2, "name": "Warehouse"}],
    "supplies": [{"id": 10, "name": "Reagent A"}],
    "suppliers": [{"id": 7, "name": "LabSupply Co"}],
    "stockByLocation": [
        {
            "locationId": 1,
            "supplies": [
                {
                    "supplyId": 10,
                    "batches": [
                        {"batchId": 100, "batchNumber": "B1", "expirationDate": "2026-12-31", "quantity": 5},
                        {"batchId": 101, "batchNumber": "B2", "expirationDate": None, "quantity": 3},
                    ],
                },
            ],
        },
    ],
}

TRANSFER_BODY = {
    "originLocationId": 1,
    "locationId": 2,
    "reason": "rebalance",
    "details": [{"supplyId": 10, "quantity": 3}],
    "user_id": 42,
}


@pytest.fixture
def gateway():
    return InMemorySubmissionGateway(clock=FixedClock(NOW))


@pytest.fixture
def client(gateway):
    service = StockMovementService(
        StrategyResolver.for_gateway(gateway),
        catalog_provider=InMemoryCatalogProvider(CatalogSnapshot.from_dict(CATALOG)),
        clock=FixedClock(NOW),
    )
    install_dependencies(HttpApiDependencies(movement_service=service))
    yield Client()
    install_dependencies(None)


def _post(client, path, body):
    return client.post(path, data=json.dumps(body), content_type="application/json")


# ══════════════════════════════════════════════════════════════
# BATCHES
# ══════════════════════════════════════════════════════════════

class TestBatchesEndpoint:
    def test_aggregate(self, client):
        response = client.get("/v1/stock-movements/batches", {"location_id": 1, "supply_id": 10})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["data"]["maxQuantity"] == 8
        assert [b["batchNumber"] for b in body["data"]["batches"]] == ["B1", "B2"]

    def test_selected_batch(self, client):
        response = client.get(
            "/v1/stock-movements/batches",
            {"location_id": 1, "supply_id": 10, "batch_id": 100},
        )
        assert response.json()["data"]["maxQuantity"] == 5

    def test_unset_supply(self, client):
        response = client.get("/v1/stock-movements/batches", {"location_id": 1})
        assert response.json()["data"]["maxQuantity"] is None

    def test_supplies(self, client):
        response = client.get("/v1/stock-movements/supplies", {"location_id": 1})
        assert response.json()["data"] == [
            {"supplyId": 10, "supplyName": "Reagent A", "availableQuantity": 8},
        ]

    def test_post_not_allowed(self, client):
        response = client.post("/v1/stock-movements/batches")
        assert response.status_code == 405
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


# ══════════════════════════════════════════════════════════════
# VALIDATE
# ══════════════════════════════════════════════════════════════

class TestValidateEndpoint:
    def test_valid(self, client):
        response = _post(client, "/v1/stock-movements/transfer/validate", TRANSFER_BODY)
        assert response.status_code == 200
        assert response.json()["data"] == {"valid": True}
        assert response.json()["meta"] == {"movement_type": "TRANSFER"}

    def test_over_capacity(self, client):
        body = dict(TRANSFER_BODY, details=[{"supplyId": 10, "quantity": 9, "maxQuantity": 50}])
        response = _post(client, "/v1/stock-movements/TRANSFER/validate", body)
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INSUFFICIENT_STOCK"
        assert "exceeds" in error["message"]
        assert error["details"]["category"] == "CAPACITY"

    def test_huge_quantity_rejected(self, client):
        body = dict(TRANSFER_BODY, details=[{"supplyId": 10, "quantity": "1e300000"}])
        response = _post(client, "/v1/stock-movements/transfer/validate", body)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_QUANTITY_TYPE"

    def test_unknown_type(self, client):
        response = _post(client, "/v1/stock-movements/exit/validate", TRANSFER_BODY)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_MOVEMENT_TYPE"

    def test_invalid_json(self, client):
        response = client.post(
            "/v1/stock-movements/transfer/validate",
            data="{not json",
            content_type="application/json",
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_get_not_allowed(self, client):
        response = client.get("/v1/stock-movements/transfer/validate")
        assert response.status_code == 405


# ══════════════════════════════════════════════════════════════
# CREATE
# ══════════════════════════════════════════════════════════════

class TestCreateEndpoint:
    def test_accepted(self, client, gateway):
        response = _post(client, "/v1/stock-movements/transfer", TRANSFER_BODY)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ACCEPTED"
        assert data["message"] == (
            "Transfer note generated. Pending confirmation at the destination location."
        )
        assert data["entry"]["movementId"] == 1
        assert gateway.submitted[0].user_id == 42

    def test_return_gets_default_exit_reason(self, client, gateway):
        body = {
            "originLocationId": 1,
            "reason": "damaged",
            "details": [{"supplyId": 10, "quantity": 2}],
            "userId": 5,
        }
        response = _post(client, "/v1/stock-movements/return", body)
        assert response.status_code == 200
        assert gateway.submitted[0].to_dict()["exitReason"] == "SUPPLIER_RETURN"

    def test_rejected(self, client, gateway):
        body = dict(TRANSFER_BODY, locationId=1)
        response = _post(client, "/v1/stock-movements/transfer", body)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "SAME_LOCATION_TRANSFER"
        assert gateway.submitted == tuple()

    def test_gateway_failure(self, client, gateway):
        gateway.fail_with("Destination location is closed for inventory", status=409)
        response = _post(client, "/v1/stock-movements/transfer", TRANSFER_BODY)
        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "SUBMISSION_FAILED"
        assert error["message"] == "Destination location is closed for inventory"

    def test_user_id_required(self, client):
        body = {k: v for k, v in TRANSFER_BODY.items() if k != "user_id"}
        response = _post(client, "/v1/stock-movements/transfer", body)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"

    def test_details_must_be_list(self, client):
        response = _post(client, "/v1/stock-movements/transfer", dict(TRANSFER_BODY, details="x"))
        assert response.status_code == 400


# ══════════════════════════════════════════════════════════════
# WIRING
# ══════════════════════════════════════════════════════════════

class TestWiring:
    def test_settings_drive_the_service(self, settings, tmp_path):
        fixture = tmp_path / "catalog.json"
        fixture.write_text(json.dumps(CATALOG), encoding="utf-8")
        settings.STOCK_MOVEMENTS = {
            "DEFAULT_EXIT_REASON": "CONSUMPTION",
            "CATALOG_FIXTURE": str(fixture),
        }
        install_dependencies(None)
        try:
            assert load_engine_settings().default_exit_reason is ExitReason.CONSUMPTION
            dependencies = build_dependencies()
            assert build_dependencies() is dependencies
            availability = dependencies.movement_service.available_batches(1, 10)
            assert availability.max_quantity == 8
        finally:
            install_dependencies(None)

    def test_missing_settings_use_defaults(self, settings):
        del settings.STOCK_MOVEMENTS
        assert load_engine_settings().default_exit_reason is ExitReason.SUPPLIER_RETURN
