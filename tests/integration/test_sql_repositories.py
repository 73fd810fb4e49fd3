"""
Integration tests - SQL repositories and the recalculation script.
"""

import importlib.util
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from app.domain.entities import BalanceSnapshot
from app.domain.errors import StorageError
from app.domain.services import BalanceAggregator
from app.domain.reports import ReportQueryEngine
from app.domain.value_objects import EntityScope, EntityType, MovementType, ReportFilter
from app.infrastructure.database import build_engine, build_session_factory, models
from app.infrastructure.database.repositories import (
    SQLDebtRepository,
    SQLEntityRepository,
    SQLExpenseRepository,
    SQLInventoryRepository,
    SQLLedgerRepository,
    SQLSalesRepository,
    SQLSnapshotRepository,
)

LARGE_AMOUNT = Decimal("1234567890123456.78")

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "recalculate_balances.py"


def load_script():
    spec = importlib.util.spec_from_file_location("recalculate_balances", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def ledger(session_factory):
    with session_factory() as db:
        db.add_all([
            models.Customer(id=1, name="Acme Printing"),
            models.Customer(id=2, name="Bright Signs"),
            models.LedgerEntry(entity_type="customer", entity_id=1, kind="sale",
                               amount=Decimal("100"), occurred_at=datetime(2024, 3, 1)),
            models.LedgerEntry(entity_type="customer", entity_id=1, kind="payment",
                               amount=Decimal("-40"), occurred_at=datetime(2024, 3, 2)),
            models.LedgerEntry(entity_type="customer", entity_id=2, kind="sale",
                               amount=Decimal("7.25"), occurred_at=datetime(2024, 3, 2)),
        ])
        db.commit()
    return SQLLedgerRepository(session_factory)


@pytest.fixture
def sql_aggregator(session_factory):
    return BalanceAggregator(
        SQLEntityRepository(session_factory),
        SQLLedgerRepository(session_factory),
        SQLSnapshotRepository(session_factory),
        clock=lambda: datetime(2024, 3, 15, 10),
    )


class TestLedgerRepository:

    def test_entries_for_one_entity_in_time_order(self, ledger):
        entries = ledger.list_entries(EntityType.CUSTOMER, 1)
        assert [e.amount for e in entries] == [Decimal("100"), Decimal("-40")]

    def test_before_is_strict(self, ledger):
        entries = ledger.list_entries_before(datetime(2024, 3, 2), EntityScope(EntityType.CUSTOMER))
        assert [e.occurred_at for e in entries] == [datetime(2024, 3, 1)]

    def test_range_with_scope(self, ledger):
        entries = ledger.list_entries_in_range(
            datetime(2024, 3, 1), datetime(2024, 3, 31), EntityScope(EntityType.CUSTOMER, 2)
        )
        assert [(e.entity_id, e.amount) for e in entries] == [(2, Decimal("7.25"))]

    def test_missing_tables_raise_storage_error(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        repo = SQLLedgerRepository(build_session_factory(engine))
        with pytest.raises(StorageError):
            repo.list_entries(EntityType.CUSTOMER, 1)
        engine.dispose()


class TestAggregatorOverSQL:

    def test_large_amounts_keep_every_cent(self, session_factory, sql_aggregator):
        with session_factory() as db:
            db.add(models.Customer(id=1, name="Acme Printing"))
            db.add(models.LedgerEntry(entity_type="customer", entity_id=1, kind="sale",
                                      amount=LARGE_AMOUNT, occurred_at=datetime(2024, 3, 1)))
            db.commit()

        entries = SQLLedgerRepository(session_factory).list_entries(EntityType.CUSTOMER, 1)
        assert [e.amount for e in entries] == [LARGE_AMOUNT]

        assert sql_aggregator.recalculate("customer", 1).balance == LARGE_AMOUNT
        stored = SQLSnapshotRepository(session_factory).get_snapshot(EntityType.CUSTOMER, 1)
        assert stored.balance == LARGE_AMOUNT

    def test_cents_sum_exactly(self, ledger, session_factory, sql_aggregator):
        with session_factory() as db:
            db.add_all([
                models.LedgerEntry(entity_type="customer", entity_id=2, kind="sale",
                                   amount=Decimal("0.10"), occurred_at=datetime(2024, 3, 3)),
                models.LedgerEntry(entity_type="customer", entity_id=2, kind="sale",
                                   amount=Decimal("0.20"), occurred_at=datetime(2024, 3, 4)),
            ])
            db.commit()

        assert sql_aggregator.recalculate(EntityType.CUSTOMER, 2).balance == Decimal("7.55")

    def test_unknown_entry_kind_raises_storage_error(self, session_factory, sql_aggregator):
        with session_factory() as db:
            db.add(models.Supplier(id=2, name="Ink Ltd"))
            db.add(models.LedgerEntry(entity_type="supplier", entity_id=2, kind="bogus",
                                      amount=Decimal("1"), occurred_at=datetime(2024, 3, 1)))
            db.commit()

        with pytest.raises(StorageError):
            sql_aggregator.recalculate("supplier", 2)
        assert SQLSnapshotRepository(session_factory).get_snapshot(EntityType.SUPPLIER, 2) is None


class TestSnapshotRepository:

    def test_upsert_replaces_existing_row(self, session_factory):
        repo = SQLSnapshotRepository(session_factory)
        repo.upsert_snapshot(BalanceSnapshot(EntityType.SUPPLIER, 4, Decimal("10"), datetime(2024, 3, 1)))
        repo.upsert_snapshot(BalanceSnapshot(EntityType.SUPPLIER, 4, Decimal("12.5"), datetime(2024, 3, 2)))

        snapshots = repo.list_snapshots(EntityType.SUPPLIER)
        assert len(snapshots) == 1
        assert snapshots[0].balance == Decimal("12.5")
        assert snapshots[0].last_recalculated_at == datetime(2024, 3, 2)

    def test_missing_snapshot(self, session_factory):
        assert SQLSnapshotRepository(session_factory).get_snapshot(EntityType.CUSTOMER, 1) is None


class TestEntityRepository:

    def test_exists_and_ids(self, ledger, session_factory):
        repo = SQLEntityRepository(session_factory)
        assert repo.exists(EntityType.CUSTOMER, 2)
        assert not repo.exists(EntityType.SUPPLIER, 2)
        assert repo.list_ids(EntityType.CUSTOMER) == [1, 2]
        assert [p.name for p in repo.list_parties(EntityType.CUSTOMER)] == ["Acme Printing", "Bright Signs"]


class TestReportsOverSQL:

    def test_inventory_movements_carry_item_name(self, session_factory):
        with session_factory() as db:
            item = models.InventoryItem(name="Toner", quantity=Decimal("4"), unit_cost=Decimal("50"))
            db.add(item)
            db.commit()
            db.add(models.InventoryMovement(
                item_id=item.id, movement_type="out", quantity=Decimal("2"),
                unit_cost=Decimal("50"), created_at=datetime(2024, 3, 3),
            ))
            db.commit()

        engine = ReportQueryEngine(
            ledger_repo=SQLLedgerRepository(session_factory),
            snapshot_repo=SQLSnapshotRepository(session_factory),
            entity_repo=SQLEntityRepository(session_factory),
            sales_repo=SQLSalesRepository(session_factory),
            expense_repo=SQLExpenseRepository(session_factory),
            inventory_repo=SQLInventoryRepository(session_factory),
            debt_repo=SQLDebtRepository(session_factory),
        )
        rows = engine.inventory_movements(ReportFilter(datetime(2024, 3, 1), datetime(2024, 3, 31)))

        assert [(r.item_name, r.movement_type, r.total_cost) for r in rows] == [
            ("Toner", MovementType.OUT, Decimal("100")),
        ]


    def test_products_from_catalog(self, session_factory):
        with session_factory() as db:
            db.add_all([
                models.Product(name="Business cards", category="Printing"),
                models.Product(name="Banner"),
            ])
            db.commit()

        products = SQLSalesRepository(session_factory).list_products()
        assert [(p.name, p.category) for p in products] == [
            ("Business cards", "Printing"), ("Banner", None)
        ]


class TestRecalculateScript:

    def test_run_succeeds(self, ledger, session_factory):
        script = load_script()
        assert script.run(EntityType.CUSTOMER, 2, session_factory=session_factory) == 0
        snapshots = SQLSnapshotRepository(session_factory).list_snapshots(EntityType.CUSTOMER)
        assert [s.balance for s in snapshots] == [Decimal("60"), Decimal("7.25")]

    def test_run_reports_failures(self, session_factory, capsys):
        with session_factory() as db:
            db.add(models.Supplier(id=1, name="Paper Co"))
            db.add(models.LedgerEntry(entity_type="supplier", entity_id=1, kind="bogus",
                                      amount=Decimal("1"), occurred_at=datetime(2024, 3, 1)))
            db.commit()

        script = load_script()
        assert script.run(EntityType.SUPPLIER, 1, session_factory=session_factory) == 1
        assert "Failed: 1" in capsys.readouterr().out
