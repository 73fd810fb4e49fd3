"""
Infrastructure - SQLAlchemy implementations of the domain repositories.

Each call opens its own short-lived session, so one repository instance can
be shared by the worker threads of a batch recalculation.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TypeVar

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.entities import (
    BalanceSnapshot,
    Debt,
    Expense,
    InventoryItem,
    InventoryMovement,
    Invoice,
    InvoiceLine,
    LedgerEntry,
    Party,
    Product,
)
from app.domain.errors import StorageError
from app.domain.services import (
    IDebtRepository,
    IEntityRepository,
    IExpenseRepository,
    IInventoryRepository,
    ILedgerRepository,
    ISalesRepository,
    ISnapshotRepository,
)
from app.domain.value_objects import EntityScope, EntityType, EntryKind, MovementType
from app.infrastructure.database import models

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

PARTY_MODELS = {
    EntityType.CUSTOMER: models.Customer,
    EntityType.SUPPLIER: models.Supplier,
    EntityType.CASH_ACCOUNT: models.CashAccount,
}


class SQLRepository:
    """Base - Session handling and error translation."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("%s failed: %s", type(self).__name__, exc)
            raise StorageError(str(exc)) from exc
        finally:
            db.close()


def _column_enum(enum_type: type[E], value: str, table: str, row_id) -> E:
    """Map a stored code to its enum; unknown codes raise StorageError."""
    try:
        return enum_type(value)
    except ValueError as exc:
        logger.error("Corrupt %s row %s: %s", table, row_id, exc)
        raise StorageError(f"corrupt {table} row {row_id}: {exc}") from exc


def _to_entry(row: models.LedgerEntry) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        entity_type=_column_enum(EntityType, row.entity_type, "ledger", row.id),
        entity_id=row.entity_id,
        kind=_column_enum(EntryKind, row.kind, "ledger", row.id),
        amount=Decimal(row.amount),
        occurred_at=row.occurred_at,
        related_invoice_id=row.related_invoice_id,
        category=row.category,
        description=row.description,
    )


def _to_snapshot(row: models.BalanceSnapshot) -> BalanceSnapshot:
    return BalanceSnapshot(
        entity_type=_column_enum(
            EntityType, row.entity_type, "snapshot", (row.entity_type, row.entity_id)
        ),
        entity_id=row.entity_id,
        balance=Decimal(row.balance),
        last_recalculated_at=row.last_recalculated_at,
    )


def _apply_scope(query, scope: EntityScope | None):
    if scope is None:
        return query
    if scope.entity_type is not None:
        query = query.filter(models.LedgerEntry.entity_type == EntityType(scope.entity_type).value)
    if scope.entity_id is not None:
        query = query.filter(models.LedgerEntry.entity_id == scope.entity_id)
    return query


class SQLLedgerRepository(SQLRepository, ILedgerRepository):

    def list_entries(self, entity_type: EntityType, entity_id: int) -> list[LedgerEntry]:
        with self.session() as db:
            rows = db.query(models.LedgerEntry).filter(
                models.LedgerEntry.entity_type == EntityType(entity_type).value,
                models.LedgerEntry.entity_id == entity_id
            ).order_by(
                models.LedgerEntry.occurred_at, models.LedgerEntry.id
            ).all()
            return [_to_entry(row) for row in rows]

    def list_entries_in_range(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        with self.session() as db:
            query = db.query(models.LedgerEntry).filter(
                models.LedgerEntry.occurred_at >= start,
                models.LedgerEntry.occurred_at <= end
            )
            rows = _apply_scope(query, scope).order_by(
                models.LedgerEntry.occurred_at, models.LedgerEntry.id
            ).all()
            return [_to_entry(row) for row in rows]

    def list_entries_before(
        self,
        instant: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        with self.session() as db:
            query = db.query(models.LedgerEntry).filter(models.LedgerEntry.occurred_at < instant)
            rows = _apply_scope(query, scope).order_by(
                models.LedgerEntry.occurred_at, models.LedgerEntry.id
            ).all()
            return [_to_entry(row) for row in rows]


class SQLSnapshotRepository(SQLRepository, ISnapshotRepository):

    def upsert_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        """Insert or replace the entity's snapshot in one statement."""
        values = {
            "entity_type": snapshot.entity_type.value,
            "entity_id": snapshot.entity_id,
            "balance": snapshot.balance,
            "last_recalculated_at": snapshot.last_recalculated_at,
        }
        with self.session() as db:
            dialect = db.get_bind().dialect.name
            insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
            statement = insert(models.BalanceSnapshot.__table__).values(**values)
            statement = statement.on_conflict_do_update(
                index_elements=["entity_type", "entity_id"],
                set_={
                    "balance": statement.excluded.balance,
                    "last_recalculated_at": statement.excluded.last_recalculated_at,
                },
            )
            db.execute(statement)
            db.commit()
        return snapshot

    def get_snapshot(self, entity_type: EntityType, entity_id: int) -> BalanceSnapshot | None:
        with self.session() as db:
            row = db.get(models.BalanceSnapshot, (EntityType(entity_type).value, entity_id))
            return _to_snapshot(row) if row else None

    def list_snapshots(self, entity_type: EntityType) -> list[BalanceSnapshot]:
        with self.session() as db:
            rows = db.query(models.BalanceSnapshot).filter(
                models.BalanceSnapshot.entity_type == EntityType(entity_type).value
            ).order_by(models.BalanceSnapshot.entity_id).all()
            return [_to_snapshot(row) for row in rows]


class SQLEntityRepository(SQLRepository, IEntityRepository):

    def exists(self, entity_type: EntityType, entity_id: int) -> bool:
        with self.session() as db:
            return db.get(PARTY_MODELS[EntityType(entity_type)], entity_id) is not None

    def list_ids(self, entity_type: EntityType) -> list[int]:
        model = PARTY_MODELS[EntityType(entity_type)]
        with self.session() as db:
            return [row.id for row in db.query(model.id).order_by(model.id).all()]

    def list_parties(self, entity_type: EntityType) -> list[Party]:
        model = PARTY_MODELS[EntityType(entity_type)]
        with self.session() as db:
            return [
                Party(
                    id=row.id,
                    name=row.name,
                    phone=getattr(row, "phone", None),
                    created_at=row.created_at,
                )
                for row in db.query(model).order_by(model.id).all()
            ]


class SQLSalesRepository(SQLRepository, ISalesRepository):

    def list_invoices(self, start: datetime, end: datetime) -> list[Invoice]:
        with self.session() as db:
            rows = db.query(models.Invoice).filter(
                models.Invoice.invoice_date >= start,
                models.Invoice.invoice_date <= end
            ).order_by(models.Invoice.invoice_date, models.Invoice.id).all()
            return [
                Invoice(
                    id=row.id,
                    invoice_date=row.invoice_date,
                    total=row.total,
                    customer_id=row.customer_id,
                    paid_amount=row.paid_amount,
                    remaining_amount=row.remaining_amount,
                    discount=row.discount,
                    total_cost=row.total_cost,
                )
                for row in rows
            ]

    def list_invoice_lines(self, start: datetime, end: datetime) -> list[InvoiceLine]:
        with self.session() as db:
            rows = db.query(models.InvoiceItem, models.Invoice.invoice_date).join(
                models.Invoice, models.Invoice.id == models.InvoiceItem.invoice_id
            ).filter(
                models.Invoice.invoice_date >= start,
                models.Invoice.invoice_date <= end
            ).order_by(models.Invoice.invoice_date, models.InvoiceItem.id).all()
            return [
                InvoiceLine(
                    id=item.id,
                    invoice_id=item.invoice_id,
                    product_id=item.product_id,
                    invoice_date=invoice_date,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_cost=item.total_cost,
                )
                for item, invoice_date in rows
            ]

    def list_products(self) -> list[Product]:
        with self.session() as db:
            rows = db.query(models.Product).order_by(models.Product.id).all()
            return [Product(id=row.id, name=row.name, category=row.category) for row in rows]


class SQLExpenseRepository(SQLRepository, IExpenseRepository):

    def list_expenses(self, start: datetime, end: datetime) -> list[Expense]:
        with self.session() as db:
            rows = db.query(models.Expense).filter(
                models.Expense.expense_date >= start,
                models.Expense.expense_date <= end
            ).order_by(models.Expense.expense_date, models.Expense.id).all()
            return [
                Expense(
                    id=row.id,
                    category=row.category,
                    amount=row.amount,
                    expense_date=row.expense_date,
                )
                for row in rows
            ]


class SQLInventoryRepository(SQLRepository, IInventoryRepository):

    def list_items(self, active_only: bool = True) -> list[InventoryItem]:
        with self.session() as db:
            query = db.query(models.InventoryItem)
            if active_only:
                query = query.filter(models.InventoryItem.is_active == True)  # noqa: E712
            return [
                InventoryItem(
                    id=row.id,
                    name=row.name,
                    quantity=row.quantity,
                    unit=row.unit,
                    category=row.category,
                    reorder_level=row.reorder_level,
                    unit_cost=row.unit_cost,
                    is_active=row.is_active,
                    updated_at=row.updated_at,
                )
                for row in query.order_by(models.InventoryItem.id).all()
            ]

    def list_movements(self, start: datetime, end: datetime) -> list[InventoryMovement]:
        with self.session() as db:
            rows = db.query(models.InventoryMovement, models.InventoryItem.name).join(
                models.InventoryItem, models.InventoryItem.id == models.InventoryMovement.item_id
            ).filter(
                models.InventoryMovement.created_at >= start,
                models.InventoryMovement.created_at <= end
            ).order_by(models.InventoryMovement.created_at, models.InventoryMovement.id).all()
            return [
                InventoryMovement(
                    id=movement.id,
                    item_id=movement.item_id,
                    item_name=item_name,
                    movement_type=_column_enum(
                        MovementType, movement.movement_type, "movement", movement.id
                    ),
                    quantity=movement.quantity,
                    occurred_at=movement.created_at,
                    unit_cost=movement.unit_cost,
                    notes=movement.notes,
                )
                for movement, item_name in rows
            ]


class SQLDebtRepository(SQLRepository, IDebtRepository):

    def list_debts(self, open_only: bool = True) -> list[Debt]:
        with self.session() as db:
            query = db.query(models.Debt)
            if open_only:
                query = query.filter(models.Debt.is_paid == False)  # noqa: E712
            return [
                Debt(
                    id=row.id,
                    debtor_name=row.debtor_name,
                    amount=row.amount,
                    remaining_amount=row.remaining_amount,
                    debt_date=row.debt_date,
                    customer_id=row.customer_id,
                    due_date=row.due_date,
                    is_paid=row.is_paid,
                )
                for row in query.order_by(models.Debt.id).all()
            ]
