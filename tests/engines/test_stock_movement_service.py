"""
Stockflow Stock Movements - Strategy Resolver and Service Tests
===============================================================
Strategy table totality, the in-memory gateway, and the
reconcile -> validate -> build -> submit orchestration.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.commands.rejection import ReasonCode
from core.time.clock import FixedClock
from engines.stock_movements.catalog import CatalogSnapshot, InMemoryCatalogProvider
from engines.stock_movements.commands import (
    DetailForm,
    ExitReason,
    MovementForm,
    MovementType,
)
from engines.stock_movements.errors import ProgrammingError, SubmissionError
from engines.stock_movements.payloads import MovementDetailPayload
from engines.stock_movements.services import (
    InMemorySubmissionGateway,
    LedgerEntry,
    MovementOutcome,
    MovementStatus,
    StockMovementService,
)
from engines.stock_movements.settings import EngineSettings
from engines.stock_movements.strategies import (
    SUCCESS_MESSAGES,
    StrategyResolver,
    build_strategy_table,
)

NOW = datetime(2026, 3, 1, 9, 30, 15, 123456, tzinfo=timezone.utc)

CATALOG = CatalogSnapshot.from_dict({
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
})


class FailingGateway:
    def __init__(self, message: str):
        self.message = message
        self.calls = 0

    def submit(self, payload):
        self.calls += 1
        raise SubmissionError(self.message, status=409)


EXPIRED_LOT_CATALOG = CatalogSnapshot.from_dict({
    "locations": [{"id": 1, "name": "Central Lab"}],
    "supplies": [{"id": 10, "name": "Reagent A"}],
    "suppliers": [{"id": 7, "name": "LabSupply Co"}],
    "stockByLocation": [
        {
            "locationId": 1,
            "supplies": [
                {
                    "supplyId": 10,
                    "batches": [
                        {"batchId": 200, "batchNumber": "OLD", "expirationDate": "2025-01-31", "quantity": 4},
                    ],
                },
            ],
        },
    ],
})


def _service(gateway=None, catalog=CATALOG, settings=None):
    gateway = gateway or InMemorySubmissionGateway(clock=FixedClock(NOW))
    provider = None if catalog is None else InMemoryCatalogProvider(catalog)
    return StockMovementService(
        StrategyResolver.for_gateway(gateway, settings),
        catalog_provider=provider,
        clock=FixedClock(NOW),
    ), gateway


def _transfer(quantity, **overrides):
    fields = dict(
        origin_location_id=1, location_id=2, reason="rebalance",
        details=(DetailForm(quantity=quantity, supply_id=10),),
    )
    fields.update(overrides)
    return MovementForm(**fields)


# ══════════════════════════════════════════════════════════════
# STRATEGY RESOLVER
# ══════════════════════════════════════════════════════════════

class TestStrategyResolver:
    def test_table_is_total(self):
        table = build_strategy_table(InMemorySubmissionGateway())
        assert set(table) == set(MovementType)
        for movement_type, strategy in table.items():
            assert strategy.movement_type is movement_type
            assert strategy.label == movement_type.label
            assert strategy.success_message() == SUCCESS_MESSAGES[movement_type]

    def test_incomplete_table_rejected(self):
        table = build_strategy_table(InMemorySubmissionGateway())
        del table[MovementType.RETURN]
        with pytest.raises(ProgrammingError, match="RETURN"):
            StrategyResolver(table)

    def test_mismatched_entry_rejected(self):
        table = build_strategy_table(InMemorySubmissionGateway())
        table[MovementType.RETURN] = table[MovementType.PURCHASE]
        with pytest.raises(ProgrammingError):
            StrategyResolver(table)

    @pytest.mark.parametrize("value", ["PURCHASE", None, 3])
    def test_resolve_non_member_is_programming_error(self, value):
        resolver = StrategyResolver.for_gateway(InMemorySubmissionGateway())
        with pytest.raises(ProgrammingError):
            resolver.resolve(value)

    def test_transfer_success_message(self):
        resolver = StrategyResolver.for_gateway(InMemorySubmissionGateway())
        assert resolver.resolve(MovementType.TRANSFER).success_message() == (
            "Transfer note generated. Pending confirmation at the destination location."
        )

    def test_settings_default_exit_reason_reaches_builder(self):
        settings = EngineSettings(default_exit_reason=ExitReason.CONSUMPTION)
        resolver = StrategyResolver.for_gateway(InMemorySubmissionGateway(), settings)
        form = MovementForm(origin_location_id=1, reason="used", details=(DetailForm(quantity=1, supply_id=10),))
        payload = resolver.resolve(MovementType.RETURN).build_payload(form, 1)
        assert payload.exit_reason is ExitReason.CONSUMPTION

    def test_strategy_refuses_foreign_payload(self):
        resolver = StrategyResolver.for_gateway(InMemorySubmissionGateway())
        form = _transfer(1)
        payload = resolver.resolve(MovementType.TRANSFER).build_payload(form, 1)
        with pytest.raises(ProgrammingError):
            resolver.resolve(MovementType.PURCHASE).submit(payload)


class TestEngineSettings:
    def test_from_mapping(self):
        settings = EngineSettings.from_mapping(
            {"DEFAULT_EXIT_REASON": "consumption", "CATALOG_FIXTURE": "/tmp/c.json"}
        )
        assert settings.default_exit_reason is ExitReason.CONSUMPTION
        assert settings.catalog_fixture == "/tmp/c.json"

    def test_defaults(self):
        assert EngineSettings.from_mapping(None) == EngineSettings()

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="RETRIES"):
            EngineSettings.from_mapping({"RETRIES": 3})


# ══════════════════════════════════════════════════════════════
# GATEWAY AND LEDGER ENTRY
# ══════════════════════════════════════════════════════════════

class TestInMemoryGateway:
    def test_sequential_ids_and_clock_dates(self):
        _, gateway = _service()
        resolver = StrategyResolver.for_gateway(gateway)
        payload = resolver.resolve(MovementType.TRANSFER).build_payload(_transfer(1), 1)
        first = gateway.submit(payload)
        second = gateway.submit(payload)
        assert (first.movement_id, second.movement_id) == (1, 2)
        assert first.movement_date == datetime(2026, 3, 1, 9, 30, 15)
        assert gateway.submitted == (payload, payload)

    def test_fail_with_and_recover(self):
        gateway = InMemorySubmissionGateway(clock=FixedClock(NOW))
        resolver = StrategyResolver.for_gateway(gateway)
        payload = resolver.resolve(MovementType.TRANSFER).build_payload(_transfer(1), 1)
        gateway.fail_with("Insufficient stock at origin", status=409)
        with pytest.raises(SubmissionError, match="Insufficient stock at origin"):
            gateway.submit(payload)
        gateway.recover()
        assert gateway.submit(payload).movement_id == 1

    def test_each_failed_submit_raises_a_new_error(self):
        gateway = InMemorySubmissionGateway(clock=FixedClock(NOW))
        resolver = StrategyResolver.for_gateway(gateway)
        payload = resolver.resolve(MovementType.TRANSFER).build_payload(_transfer(1), 1)
        gateway.fail_with("Destination closed", status=409)
        errors = []
        for _ in range(2):
            with pytest.raises(SubmissionError) as excinfo:
                gateway.submit(payload)
            errors.append(excinfo.value)
        assert errors[0] is not errors[1]
        assert [e.status for e in errors] == [409, 409]
        assert gateway.submitted == tuple()


class TestLedgerEntry:
    def test_round_trip(self):
        data = {
            "movementId": 12,
            "movementType": "TRANSFER",
            "movementDate": "2026-03-01T09:30:15",
            "details": [{"supplyId": 10, "quantity": 4, "batchNumber": "B1"}],
        }
        entry = LedgerEntry.from_dict(data)
        assert entry.movement_type is MovementType.TRANSFER
        assert entry.details == (
            MovementDetailPayload(supply_id=10, quantity=Decimal("4"), batch_number="B1"),
        )
        assert entry.to_dict() == data

    def test_rejects_non_positive_id(self):
        with pytest.raises(ValueError, match="movement_id"):
            LedgerEntry(
                movement_id=0,
                movement_type=MovementType.PURCHASE,
                movement_date=datetime(2026, 3, 1),
            )


# ══════════════════════════════════════════════════════════════
# SERVICE
# ══════════════════════════════════════════════════════════════

class TestAvailableBatches:
    def test_aggregate_then_selected(self):
        service, _ = _service()
        assert service.available_batches(1, 10).max_quantity == Decimal("8")
        assert service.available_batches(1, 10, batch_id=100).max_quantity == Decimal("5")

    def test_without_catalog(self):
        service, _ = _service(catalog=None)
        availability = service.available_batches(1, 10)
        assert availability.batches == tuple()
        assert availability.max_quantity is None

    def test_available_supplies(self):
        service, _ = _service()
        assert [s.supply_id for s in service.available_supplies(1)] == [10]


class TestServiceValidate:
    def test_stale_max_quantity_is_rechecked(self):
        service, _ = _service()
        form = _transfer(9, details=(DetailForm(quantity=9, supply_id=10, max_quantity=50),))
        result = service.validate(MovementType.TRANSFER, form)
        assert result.valid is False
        assert result.code == ReasonCode.INSUFFICIENT_STOCK
        assert "exceed" in result.message

    def test_boundary_from_catalog(self):
        service, _ = _service()
        assert service.validate(MovementType.TRANSFER, _transfer(8)).valid
        batch_form = _transfer(5, details=(DetailForm(quantity=6, supply_id=10, batch_id=100),))
        assert service.validate(MovementType.TRANSFER, batch_form).code == ReasonCode.INSUFFICIENT_STOCK

    def test_without_catalog_trusts_caller_max(self):
        service, _ = _service(catalog=None)
        form = _transfer(9, details=(DetailForm(quantity=9, supply_id=10, max_quantity=50),))
        assert service.validate(MovementType.TRANSFER, form).valid

    def test_lines_sharing_a_batch_are_summed(self):
        service, gateway = _service()
        form = _transfer(5, details=(
            DetailForm(quantity=5, supply_id=10, batch_id=100),
            DetailForm(quantity=5, supply_id=10, batch_id=100),
        ))
        result = service.validate(MovementType.TRANSFER, form)
        assert result.code == ReasonCode.INSUFFICIENT_STOCK
        assert result.reason.detail_index == 1
        outcome = service.create_movement(MovementType.TRANSFER, form, user_id=1)
        assert outcome.status is MovementStatus.REJECTED
        assert gateway.submitted == tuple()

    def test_tighter_caller_max_is_kept(self):
        service, _ = _service()
        form = MovementForm(
            origin_location_id=1, reason="short delivery",
            details=(DetailForm(quantity=5, supply_id=10, batch_id=100, max_quantity=2),),
        )
        result = service.validate(MovementType.RETURN, form)
        assert result.code == ReasonCode.INSUFFICIENT_STOCK
        assert "(2)" in result.message

    def test_expired_lot_can_be_returned(self):
        service, gateway = _service(catalog=EXPIRED_LOT_CATALOG)
        form = MovementForm(
            origin_location_id=1, reason="expired",
            details=(DetailForm(quantity=4, supply_id=10, batch_id=200),),
        )
        assert service.validate(MovementType.RETURN, form).valid
        outcome = service.create_movement(MovementType.RETURN, form, user_id=3)
        assert outcome.status is MovementStatus.ACCEPTED
        assert gateway.submitted[0].details[0].expiration_date == "2025-01-31"

    def test_unknown_type_is_programming_error(self):
        service, _ = _service()
        with pytest.raises(ProgrammingError):
            service.validate("TRANSFER", _transfer(1))


class TestCreateMovement:
    def test_accepted(self, caplog):
        service, gateway = _service()
        with caplog.at_level(logging.INFO, logger="stockflow.movements"):
            outcome = service.create_movement(MovementType.TRANSFER, _transfer(3), user_id=42)
        assert outcome.status is MovementStatus.ACCEPTED
        assert outcome.accepted
        assert outcome.entry.movement_id == 1
        assert outcome.message == SUCCESS_MESSAGES[MovementType.TRANSFER]
        assert gateway.submitted[0].to_dict() == {
            "originLocationId": 1,
            "destinationLocationId": 2,
            "userId": 42,
            "reason": "rebalance",
            "details": [{"supplyId": 10, "quantity": 3}],
        }
        assert "Accepted TRANSFER movement 1" in caplog.text

    def test_rejected_never_submits(self, caplog):
        service, gateway = _service()
        with caplog.at_level(logging.INFO, logger="stockflow.movements"):
            outcome = service.create_movement(MovementType.TRANSFER, _transfer(0), user_id=42)
        assert outcome.status is MovementStatus.REJECTED
        assert outcome.rejection.code == ReasonCode.NON_POSITIVE_QUANTITY
        assert outcome.entry is None
        assert gateway.submitted == tuple()
        assert "Rejected TRANSFER" in caplog.text

    def test_gateway_failure_forwarded_verbatim(self, caplog):
        gateway = FailingGateway("Batch B1 was consumed by another movement")
        service, _ = _service(gateway=gateway)
        with caplog.at_level(logging.WARNING, logger="stockflow.movements"):
            outcome = service.create_movement(MovementType.TRANSFER, _transfer(1), user_id=42)
        assert outcome.status is MovementStatus.FAILED
        assert outcome.message == "Batch B1 was consumed by another movement"
        assert gateway.calls == 1
        assert "Batch B1 was consumed" in caplog.text

    def test_purchase_accepted_without_catalog(self):
        service, gateway = _service(catalog=None)
        form = MovementForm.from_dict({
            "supplierId": 7, "locationId": 3, "reason": "restock",
            "details": [{"supplyId": 10, "quantity": 50}],
        })
        outcome = service.create_movement(MovementType.PURCHASE, form, user_id=1)
        assert outcome.accepted
        assert outcome.message == "Purchase entry registered successfully."
        assert gateway.submitted[0].destination_location_id == 3

    def test_vanished_batch_is_not_sent(self):
        service, gateway = _service()
        form = _transfer(1, details=(
            DetailForm(quantity=1, supply_id=10, batch_id=999, batch_number="OLD"),
        ))
        outcome = service.create_movement(MovementType.TRANSFER, form, user_id=1)
        assert outcome.accepted
        assert "batchNumber" not in gateway.submitted[0].to_dict()["details"][0]

    def test_outcome_to_dict(self):
        service, _ = _service()
        outcome = service.create_movement(MovementType.TRANSFER, _transfer(2), user_id=1)
        data = outcome.to_dict()
        assert data["status"] == "ACCEPTED"
        assert data["movementType"] == "TRANSFER"
        assert data["entry"]["movementDate"] == "2026-03-01T09:30:15"


class TestMovementOutcome:
    def test_accepted_requires_entry(self):
        with pytest.raises(ValueError, match="ledger entry"):
            MovementOutcome(
                status=MovementStatus.ACCEPTED,
                movement_type=MovementType.PURCHASE,
                message="ok",
            )

    def test_rejected_requires_reason(self):
        with pytest.raises(ValueError, match="rejection reason"):
            MovementOutcome(
                status=MovementStatus.REJECTED,
                movement_type=MovementType.PURCHASE,
                message="no",
            )


def test_service_requires_resolver():
    with pytest.raises(ProgrammingError):
        StockMovementService(build_strategy_table(InMemorySubmissionGateway()))


def test_reconciled_form_keeps_caller_form_intact():
    service, _ = _service()
    form = _transfer(2)
    service.validate(MovementType.TRANSFER, form)
    assert form.details[0].max_quantity is None
