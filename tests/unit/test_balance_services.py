"""
Unit tests - Balance recalculation and batch processing.
"""

import threading
from datetime import datetime
from decimal import Decimal

import pytest

from app.domain.errors import InvalidArgumentError, NotFoundError, StorageError
from app.domain.services import BalanceAggregator, BatchRecalculator, sum_entries
from app.domain.value_objects import EntityType, EntryKind
from app.infrastructure.memory import InMemoryStore


class FailingLedgerStore(InMemoryStore):
    """Store whose ledger reads fail for selected entity ids."""

    def __init__(self, failing_ids):
        super().__init__()
        self.failing_ids = set(failing_ids)

    def list_entries(self, entity_type, entity_id):
        if entity_id in self.failing_ids:
            raise StorageError(f"ledger unavailable for {entity_id}")
        return super().list_entries(entity_type, entity_id)


def add_supplier_history(store: InMemoryStore, supplier_id: int, *amounts: str) -> None:
    store.add_party(EntityType.SUPPLIER, f"Supplier {supplier_id}", entity_id=supplier_id)
    for day, amount in enumerate(amounts, start=1):
        store.add_entry(
            EntityType.SUPPLIER, supplier_id, EntryKind.PURCHASE, amount, datetime(2024, 3, day)
        )


class TestBalanceAggregator:
    """Test rebuilding one entity's balance from its ledger."""

    def test_sale_payment_sale_sums_to_85(self, store, aggregator, now):
        customer = store.add_party(EntityType.CUSTOMER, "Acme Printing")
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.SALE, "100", datetime(2024, 3, 1))
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.PAYMENT, "-40", datetime(2024, 3, 2))
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.SALE, "25", datetime(2024, 3, 3))

        snapshot = aggregator.recalculate(EntityType.CUSTOMER, customer.id)

        assert snapshot.balance == Decimal("85")
        assert snapshot.last_recalculated_at == now
        assert store.get_snapshot(EntityType.CUSTOMER, customer.id) == snapshot

    def test_recalculation_is_idempotent(self, store, aggregator):
        customer = store.add_party(EntityType.CUSTOMER, "Acme Printing")
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.SALE, "19.99", datetime(2024, 3, 1))

        first = aggregator.recalculate("customer", customer.id)
        second = aggregator.recalculate("customer", customer.id)

        assert first.balance == second.balance == Decimal("19.99")
        assert len(store.list_snapshots(EntityType.CUSTOMER)) == 1

    def test_balance_independent_of_insertion_order(self):
        amounts = [("0.10", 3), ("0.20", 1), ("-0.05", 2), ("1000000.01", 4)]
        balances = []
        for ordering in (amounts, list(reversed(amounts))):
            store = InMemoryStore()
            store.add_party(EntityType.CASH_ACCOUNT, "Drawer", entity_id=1)
            for amount, day in ordering:
                store.add_entry(EntityType.CASH_ACCOUNT, 1, EntryKind.ADJUSTMENT, amount, datetime(2024, 3, day))
            balances.append(BalanceAggregator(store, store, store).recalculate(EntityType.CASH_ACCOUNT, 1).balance)

        assert balances[0] == balances[1] == Decimal("1000000.26")

    def test_entity_without_entries_has_zero_balance(self, store, aggregator):
        supplier = store.add_party(EntityType.SUPPLIER, "Paper Co")
        assert aggregator.recalculate(EntityType.SUPPLIER, supplier.id).balance == Decimal("0")

    def test_unknown_entity_raises_not_found(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.recalculate(EntityType.CUSTOMER, 404)

    def test_unknown_entity_type_rejected(self, aggregator):
        with pytest.raises(InvalidArgumentError):
            aggregator.recalculate("employee", 1)

    def test_get_balance_before_and_after_recalculation(self, store, aggregator):
        customer = store.add_party(EntityType.CUSTOMER, "Acme Printing")
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.SALE, "50", datetime(2024, 3, 1))

        assert aggregator.get_balance(EntityType.CUSTOMER, customer.id) is None
        aggregator.recalculate(EntityType.CUSTOMER, customer.id)
        assert aggregator.get_balance(EntityType.CUSTOMER, customer.id).balance == Decimal("50")

    def test_cached_balance_is_stale_until_recalculated(self, store, aggregator):
        customer = store.add_party(EntityType.CUSTOMER, "Acme Printing")
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.SALE, "50", datetime(2024, 3, 1))
        aggregator.recalculate(EntityType.CUSTOMER, customer.id)
        store.add_entry(EntityType.CUSTOMER, customer.id, EntryKind.PAYMENT, "-50", datetime(2024, 3, 2))

        assert aggregator.get_balance(EntityType.CUSTOMER, customer.id).balance == Decimal("50")
        assert aggregator.recalculate(EntityType.CUSTOMER, customer.id).balance == Decimal("0")

    def test_failed_read_keeps_previous_snapshot(self):
        store = FailingLedgerStore(failing_ids=set())
        add_supplier_history(store, 1, "30")
        aggregator = BalanceAggregator(store, store, store)
        before = aggregator.recalculate(EntityType.SUPPLIER, 1)

        store.failing_ids.add(1)
        with pytest.raises(StorageError):
            aggregator.recalculate(EntityType.SUPPLIER, 1)

        assert store.get_snapshot(EntityType.SUPPLIER, 1) == before

    def test_sum_entries_of_nothing_is_zero(self):
        assert sum_entries([]) == Decimal("0")


class TestBatchRecalculator:
    """Test batch recalculation with partial failures."""

    def test_one_failure_does_not_abort_siblings(self):
        store = FailingLedgerStore(failing_ids={2})
        add_supplier_history(store, 1, "10", "5")
        add_supplier_history(store, 2, "99")
        add_supplier_history(store, 3, "7")
        aggregator = BalanceAggregator(store, store, store)

        result = BatchRecalculator(aggregator, store, max_workers=3).recalculate_all(EntityType.SUPPLIER)

        assert result.total == 3
        assert result.succeeded == 2
        assert [f.entity_id for f in result.failed] == [2]
        assert result.failed[0].error_type == "StorageError"
        assert result.is_complete is False
        assert store.get_snapshot(EntityType.SUPPLIER, 1).balance == Decimal("15")
        assert store.get_snapshot(EntityType.SUPPLIER, 2) is None
        assert store.get_snapshot(EntityType.SUPPLIER, 3).balance == Decimal("7")

    def test_progress_reported_for_every_entity(self, store, recalculator):
        for supplier_id in range(1, 6):
            add_supplier_history(store, supplier_id, "1")
        calls = []
        lock = threading.Lock()

        def progress(current, total):
            with lock:
                calls.append((current, total))

        result = recalculator.recalculate_all("supplier", progress=progress)

        assert result.succeeded == 5
        assert calls[0] == (0, 5)
        assert calls[-1] == (5, 5)
        assert [current for current, _ in calls] == list(range(6))

    def test_empty_entity_type(self, recalculator):
        calls = []
        result = recalculator.recalculate_all(EntityType.CASH_ACCOUNT, progress=lambda c, t: calls.append((c, t)))

        assert result.total == 0
        assert result.is_complete
        assert calls == [(0, 0)]

    def test_concurrency_cap_validated(self, aggregator, store):
        with pytest.raises(InvalidArgumentError):
            BatchRecalculator(aggregator, store, max_workers=0)

    def test_single_worker_matches_parallel_result(self, store, aggregator):
        for supplier_id in range(1, 9):
            add_supplier_history(store, supplier_id, str(supplier_id), "0.5")

        BatchRecalculator(aggregator, store, max_workers=1).recalculate_all(EntityType.SUPPLIER)
        serial = store.list_snapshots(EntityType.SUPPLIER)
        BatchRecalculator(aggregator, store, max_workers=8).recalculate_all(EntityType.SUPPLIER)
        parallel = store.list_snapshots(EntityType.SUPPLIER)

        assert [s.balance for s in serial] == [s.balance for s in parallel]
        assert serial[0].balance == Decimal("1.5")
