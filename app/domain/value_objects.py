"""
Domain Layer - Value objects for the print shop ledger.

Sign convention for ledger amounts (shared by balances and reports):
- Customer: a sale/charge increases the debt (+), a payment decreases it (-).
- Supplier: a purchase increases what the shop owes (+), a payment to the
  supplier decreases it (-).
- Cash account: inflow is positive, outflow is negative.
Adjustments and transfers carry their own sign.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .errors import InvalidArgumentError

ZERO = Decimal("0")


class EntityType(str, Enum):
    """Entities that own a running balance."""
    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    CASH_ACCOUNT = "cash_account"


class EntryKind(str, Enum):
    """Kinds of financial events recorded in the ledger."""
    SALE = "sale"
    PAYMENT = "payment"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    WITHDRAWAL = "withdrawal"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"


class ReportPeriod(str, Enum):
    """Bucket granularity for trend reports."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PeriodPreset(str, Enum):
    """Named date ranges offered by the report filters."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "thisWeek"
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"
    LAST_YEAR = "lastYear"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


class DebtStatus(str, Enum):
    CURRENT = "current"
    OVERDUE = "overdue"
    CRITICAL = "critical"


class CashDirection(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class MovementType(str, Enum):
    """Inventory movement types."""
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class ProductRanking(str, Enum):
    QUANTITY = "quantity"
    REVENUE = "revenue"


@dataclass(frozen=True, slots=True)
class DateRange:
    """Value Object - Closed interval [start, end]."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True, slots=True)
class EntityScope:
    """Value Object - Optional restriction of a report to one entity or entity type."""
    entity_type: EntityType | None = None
    entity_id: int | None = None

    def matches(self, entity_type: EntityType, entity_id: int) -> bool:
        if self.entity_type is not None and self.entity_type != entity_type:
            return False
        if self.entity_id is not None and self.entity_id != entity_id:
            return False
        return True


@dataclass(frozen=True, slots=True)
class ReportFilter:
    """Value Object - Window, granularity and scope of a report query."""
    start_date: datetime
    end_date: datetime
    period: ReportPeriod = ReportPeriod.MONTHLY
    entity_scope: EntityScope | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "period", ReportPeriod(self.period))
        except ValueError:
            raise InvalidArgumentError(f"Unsupported period: {self.period!r}") from None
        if self.start_date > self.end_date:
            raise InvalidArgumentError(
                f"start_date ({self.start_date.isoformat()}) is after "
                f"end_date ({self.end_date.isoformat()})"
            )

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    def contains(self, instant: datetime) -> bool:
        return self.start_date <= instant <= self.end_date
