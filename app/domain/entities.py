"""
Domain Entities - Ledger, balances and the catalog records reports read.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .value_objects import ZERO, EntityType, EntryKind, MovementType


@dataclass(frozen=True)
class LedgerEntry:
    """
    Entity - One financial event affecting an entity's balance.
    Never edited or deleted once committed; corrections are new offsetting entries.
    """
    id: int
    entity_type: EntityType
    entity_id: int
    kind: EntryKind
    amount: Decimal
    occurred_at: datetime
    related_invoice_id: int | None = None
    category: str | None = None
    description: str | None = None

    @property
    def category_label(self) -> str:
        return self.category or self.kind.value


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Entity - Cached rollup of an entity's ledger.
    Only the BalanceAggregator writes it.
    """
    entity_type: EntityType
    entity_id: int
    balance: Decimal
    last_recalculated_at: datetime


@dataclass(frozen=True)
class Party:
    """Customer, supplier or cash account as seen by reports."""
    id: int
    name: str
    phone: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    category: str | None = None


@dataclass(frozen=True)
class Invoice:
    id: int
    invoice_date: datetime
    total: Decimal
    customer_id: int | None = None
    paid_amount: Decimal = ZERO
    remaining_amount: Decimal = ZERO
    discount: Decimal = ZERO
    total_cost: Decimal = ZERO


@dataclass(frozen=True)
class InvoiceLine:
    """Invoice line joined with its invoice date."""
    id: int
    invoice_id: int
    product_id: int
    invoice_date: datetime
    quantity: Decimal
    unit_price: Decimal
    total_cost: Decimal = ZERO

    @property
    def revenue(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Expense:
    id: int
    category: str
    amount: Decimal
    expense_date: datetime


@dataclass(frozen=True)
class InventoryItem:
    id: int
    name: str
    quantity: Decimal
    unit: str | None = None
    category: str | None = None
    reorder_level: Decimal | None = None
    unit_cost: Decimal | None = None
    is_active: bool = True
    updated_at: datetime | None = None

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * (self.unit_cost or ZERO)


@dataclass(frozen=True)
class InventoryMovement:
    id: int
    item_id: int
    item_name: str
    movement_type: MovementType
    quantity: Decimal
    occurred_at: datetime
    unit_cost: Decimal | None = None
    notes: str | None = None

    @property
    def value(self) -> Decimal:
        return self.quantity * (self.unit_cost or ZERO)


@dataclass(frozen=True)
class Debt:
    """Receivable owed to the shop."""
    id: int
    debtor_name: str
    amount: Decimal
    remaining_amount: Decimal
    debt_date: date
    customer_id: int | None = None
    due_date: date | None = None
    is_paid: bool = False

    @property
    def paid_amount(self) -> Decimal:
        return self.amount - self.remaining_amount

    def days_overdue(self, as_of: date) -> int:
        if self.due_date is None:
            return 0
        return (as_of - self.due_date).days

    def age_days(self, as_of: date) -> int:
        return (as_of - self.debt_date).days
