"""
Infrastructure - In-memory store implementing every domain repository.

Used by the unit tests and handy for demos. All access is guarded by one
lock so batch recalculation threads can share an instance.
"""

import threading
from datetime import date, datetime
from decimal import Decimal
from itertools import count

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
from app.domain.services import (
    IDebtRepository,
    IEntityRepository,
    IExpenseRepository,
    IInventoryRepository,
    ILedgerRepository,
    ISalesRepository,
    ISnapshotRepository,
)
from app.domain.value_objects import ZERO, EntityScope, EntityType, EntryKind, MovementType


def _in_scope(entry: LedgerEntry, scope: EntityScope | None) -> bool:
    return scope is None or scope.matches(entry.entity_type, entry.entity_id)


def _ordered(entries: list[LedgerEntry]) -> list[LedgerEntry]:
    return sorted(entries, key=lambda e: (e.occurred_at, e.id))


class InMemoryStore(
    ILedgerRepository,
    ISnapshotRepository,
    IEntityRepository,
    ISalesRepository,
    IExpenseRepository,
    IInventoryRepository,
    IDebtRepository,
):
    def __init__(self):
        self._lock = threading.Lock()
        self._ids = count(1)
        self._parties: dict[EntityType, dict[int, Party]] = {t: {} for t in EntityType}
        self._entries: list[LedgerEntry] = []
        self._snapshots: dict[tuple[EntityType, int], BalanceSnapshot] = {}
        self._products: dict[int, Product] = {}
        self._invoices: dict[int, Invoice] = {}
        self._lines: list[InvoiceLine] = []
        self._expenses: list[Expense] = []
        self._items: dict[int, InventoryItem] = {}
        self._movements: list[InventoryMovement] = []
        self._debts: list[Debt] = []

    def _next_id(self) -> int:
        return next(self._ids)

    # --- writers used to set up data ----------------------------------------

    def add_party(
        self,
        entity_type: EntityType,
        name: str,
        entity_id: int | None = None,
        phone: str | None = None,
        created_at: datetime | None = None
    ) -> Party:
        with self._lock:
            party = Party(
                id=entity_id if entity_id is not None else self._next_id(),
                name=name,
                phone=phone,
                created_at=created_at,
            )
            self._parties[EntityType(entity_type)][party.id] = party
            return party

    def add_entry(
        self,
        entity_type: EntityType,
        entity_id: int,
        kind: EntryKind,
        amount: Decimal | str | int,
        occurred_at: datetime,
        **details
    ) -> LedgerEntry:
        with self._lock:
            entry = LedgerEntry(
                id=self._next_id(),
                entity_type=EntityType(entity_type),
                entity_id=entity_id,
                kind=EntryKind(kind),
                amount=Decimal(amount),
                occurred_at=occurred_at,
                **details
            )
            self._entries.append(entry)
            return entry

    def add_product(self, name: str, category: str | None = None) -> Product:
        with self._lock:
            product = Product(id=self._next_id(), name=name, category=category)
            self._products[product.id] = product
            return product

    def add_invoice(
        self,
        invoice_date: datetime,
        total: Decimal | str | int,
        customer_id: int | None = None,
        paid_amount: Decimal | str | int = ZERO,
        discount: Decimal | str | int = ZERO,
        lines: list[tuple[int, Decimal | str | int, Decimal | str | int, Decimal | str | int]] = ()
    ) -> Invoice:
        """lines: (product_id, quantity, unit_price, total_cost) tuples."""
        with self._lock:
            total = Decimal(total)
            paid_amount = Decimal(paid_amount)
            invoice_id = self._next_id()
            for product_id, quantity, unit_price, total_cost in lines:
                self._lines.append(InvoiceLine(
                    id=self._next_id(),
                    invoice_id=invoice_id,
                    product_id=product_id,
                    invoice_date=invoice_date,
                    quantity=Decimal(quantity),
                    unit_price=Decimal(unit_price),
                    total_cost=Decimal(total_cost),
                ))
            invoice = Invoice(
                id=invoice_id,
                invoice_date=invoice_date,
                total=total,
                customer_id=customer_id,
                paid_amount=paid_amount,
                remaining_amount=total - paid_amount,
                discount=Decimal(discount),
                total_cost=sum((Decimal(line[3]) for line in lines), ZERO),
            )
            self._invoices[invoice_id] = invoice
            return invoice

    def add_expense(self, category: str, amount: Decimal | str | int, expense_date: datetime) -> Expense:
        with self._lock:
            expense = Expense(
                id=self._next_id(),
                category=category,
                amount=Decimal(amount),
                expense_date=expense_date,
            )
            self._expenses.append(expense)
            return expense

    def add_item(self, name: str, quantity: Decimal | str | int, **details) -> InventoryItem:
        with self._lock:
            item = InventoryItem(id=self._next_id(), name=name, quantity=Decimal(quantity), **details)
            self._items[item.id] = item
            return item

    def add_movement(
        self,
        item_id: int,
        movement_type: MovementType,
        quantity: Decimal | str | int,
        occurred_at: datetime,
        unit_cost: Decimal | None = None,
        notes: str | None = None
    ) -> InventoryMovement:
        with self._lock:
            movement = InventoryMovement(
                id=self._next_id(),
                item_id=item_id,
                item_name=self._items[item_id].name,
                movement_type=MovementType(movement_type),
                quantity=Decimal(quantity),
                occurred_at=occurred_at,
                unit_cost=unit_cost,
                notes=notes,
            )
            self._movements.append(movement)
            return movement

    def add_debt(
        self,
        debtor_name: str,
        amount: Decimal | str | int,
        debt_date: date,
        remaining_amount: Decimal | str | int | None = None,
        customer_id: int | None = None,
        due_date: date | None = None,
        is_paid: bool = False
    ) -> Debt:
        with self._lock:
            debt = Debt(
                id=self._next_id(),
                debtor_name=debtor_name,
                amount=Decimal(amount),
                remaining_amount=Decimal(amount if remaining_amount is None else remaining_amount),
                debt_date=debt_date,
                customer_id=customer_id,
                due_date=due_date,
                is_paid=is_paid,
            )
            self._debts.append(debt)
            return debt

    # --- ILedgerRepository --------------------------------------------------

    def list_entries(self, entity_type: EntityType, entity_id: int) -> list[LedgerEntry]:
        with self._lock:
            return _ordered([
                e for e in self._entries
                if e.entity_type == entity_type and e.entity_id == entity_id
            ])

    def list_entries_in_range(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        with self._lock:
            return _ordered([
                e for e in self._entries
                if start <= e.occurred_at <= end and _in_scope(e, scope)
            ])

    def list_entries_before(
        self,
        instant: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        with self._lock:
            return _ordered([
                e for e in self._entries
                if e.occurred_at < instant and _in_scope(e, scope)
            ])

    # --- ISnapshotRepository ------------------------------------------------

    def upsert_snapshot(self, snapshot: BalanceSnapshot) -> BalanceSnapshot:
        with self._lock:
            self._snapshots[(snapshot.entity_type, snapshot.entity_id)] = snapshot
            return snapshot

    def get_snapshot(self, entity_type: EntityType, entity_id: int) -> BalanceSnapshot | None:
        with self._lock:
            return self._snapshots.get((EntityType(entity_type), entity_id))

    def list_snapshots(self, entity_type: EntityType) -> list[BalanceSnapshot]:
        with self._lock:
            return sorted(
                (s for (t, _), s in self._snapshots.items() if t == entity_type),
                key=lambda s: s.entity_id
            )

    # --- IEntityRepository --------------------------------------------------

    def exists(self, entity_type: EntityType, entity_id: int) -> bool:
        with self._lock:
            return entity_id in self._parties[EntityType(entity_type)]

    def list_ids(self, entity_type: EntityType) -> list[int]:
        with self._lock:
            return sorted(self._parties[EntityType(entity_type)])

    def list_parties(self, entity_type: EntityType) -> list[Party]:
        with self._lock:
            parties = self._parties[EntityType(entity_type)]
            return [parties[i] for i in sorted(parties)]

    # --- ISalesRepository ---------------------------------------------------

    def list_invoices(self, start: datetime, end: datetime) -> list[Invoice]:
        with self._lock:
            return [i for i in self._invoices.values() if start <= i.invoice_date <= end]

    def list_invoice_lines(self, start: datetime, end: datetime) -> list[InvoiceLine]:
        with self._lock:
            return [line for line in self._lines if start <= line.invoice_date <= end]

    def list_products(self) -> list[Product]:
        with self._lock:
            return list(self._products.values())

    # --- IExpenseRepository -------------------------------------------------

    def list_expenses(self, start: datetime, end: datetime) -> list[Expense]:
        with self._lock:
            return [e for e in self._expenses if start <= e.expense_date <= end]

    # --- IInventoryRepository -----------------------------------------------

    def list_items(self, active_only: bool = True) -> list[InventoryItem]:
        with self._lock:
            return [i for i in self._items.values() if i.is_active or not active_only]

    def list_movements(self, start: datetime, end: datetime) -> list[InventoryMovement]:
        with self._lock:
            return [m for m in self._movements if start <= m.occurred_at <= end]

    # --- IDebtRepository ----------------------------------------------------

    def list_debts(self, open_only: bool = True) -> list[Debt]:
        with self._lock:
            return [d for d in self._debts if not (open_only and d.is_paid)]
