"""
Infrastructure - SQLModel database models for the print shop.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlmodel import Field, SQLModel

from app.infrastructure.database.types import ExactDecimal


class Customer(SQLModel, table=True):
    """Customer."""

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: str | None = None
    address: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class Supplier(SQLModel, table=True):
    """Supplier of paper, ink and other consumables."""

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    phone: str | None = None
    address: str | None = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class CashAccount(SQLModel, table=True):
    """Cash drawer, bank account or wallet."""

    id: int | None = Field(default=None, primary_key=True)
    name: str
    account_type: str = "cash"  # cash, bank, wallet
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class LedgerEntry(SQLModel, table=True):
    """Append-only financial event; amount is signed."""

    id: int | None = Field(default=None, primary_key=True)
    entity_type: str = Field(index=True)  # customer, supplier, cash_account
    entity_id: int = Field(index=True)
    kind: str  # sale, payment, purchase, expense, withdrawal, adjustment, transfer
    amount: Decimal = Field(sa_type=ExactDecimal(18, 2))
    occurred_at: datetime = Field(index=True)
    related_invoice_id: int | None = Field(default=None, foreign_key="invoice.id")
    category: str | None = None
    description: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class BalanceSnapshot(SQLModel, table=True):
    """Cached balance, one row per entity."""

    entity_type: str = Field(primary_key=True)
    entity_id: int = Field(primary_key=True)
    balance: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))
    last_recalculated_at: datetime


class Product(SQLModel, table=True):
    """Product or print service."""

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    category: str | None = None


class Invoice(SQLModel, table=True):
    """Sales invoice."""

    id: int | None = Field(default=None, primary_key=True)
    customer_id: int | None = Field(default=None, foreign_key="customer.id", index=True)
    invoice_date: datetime = Field(index=True)
    total: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))
    paid_amount: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))
    remaining_amount: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))
    discount: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))
    total_cost: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))


class InvoiceItem(SQLModel, table=True):
    """Invoice line."""

    id: int | None = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoice.id", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    quantity: Decimal = Field(sa_type=ExactDecimal(18, 3))
    unit_price: Decimal = Field(sa_type=ExactDecimal(18, 2))
    total_cost: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 2))


class Expense(SQLModel, table=True):
    """Operating expense."""

    id: int | None = Field(default=None, primary_key=True)
    category: str = Field(index=True)
    amount: Decimal = Field(sa_type=ExactDecimal(18, 2))
    expense_date: datetime = Field(index=True)
    description: str | None = None


class InventoryItem(SQLModel, table=True):
    """Stock item (paper, ink, toner...)."""

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    unit: str | None = None
    category: str | None = None
    quantity: Decimal = Field(default=Decimal("0"), sa_type=ExactDecimal(18, 3))
    reorder_level: Decimal | None = Field(default=None, sa_type=ExactDecimal(18, 3))
    unit_cost: Decimal | None = Field(default=None, sa_type=ExactDecimal(18, 2))
    is_active: bool = True
    updated_at: datetime = Field(default_factory=datetime.now)


class InventoryMovement(SQLModel, table=True):
    """Stock movement; adjustment quantities are signed."""

    id: int | None = Field(default=None, primary_key=True)
    item_id: int = Field(foreign_key="inventoryitem.id", index=True)
    movement_type: str  # in, out, adjustment
    quantity: Decimal = Field(sa_type=ExactDecimal(18, 3))
    unit_cost: Decimal | None = Field(default=None, sa_type=ExactDecimal(18, 2))
    notes: str | None = None
    created_at: datetime = Field(default_factory=datetime.now, index=True)


class Debt(SQLModel, table=True):
    """Receivable tracked outside the invoice flow."""

    id: int | None = Field(default=None, primary_key=True)
    customer_id: int | None = Field(default=None, foreign_key="customer.id", index=True)
    debtor_name: str
    amount: Decimal = Field(sa_type=ExactDecimal(18, 2))
    remaining_amount: Decimal = Field(sa_type=ExactDecimal(18, 2))
    debt_date: date
    due_date: date | None = None
    is_paid: bool = False
