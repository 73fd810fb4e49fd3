"""Domain layer - Pure Python business logic."""

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
from app.domain.errors import InvalidArgumentError, LedgerError, NotFoundError, StorageError
from app.domain.export import EXPORTABLE_REPORTS, ExportAdapter, ReportTable, build_report_table, to_table
from app.domain.periods import bucket_key, filter_for_preset, previous_range, resolve
from app.domain.reports import ReportQueryEngine, classify_debt, classify_stock, growth
from app.domain.services import (
    BalanceAggregator,
    BatchRecalculator,
    BatchResult,
    IDebtRepository,
    IEntityRepository,
    IExpenseRepository,
    IInventoryRepository,
    ILedgerRepository,
    ISalesRepository,
    ISnapshotRepository,
    RecalculationFailure,
)
from app.domain.value_objects import (
    CashDirection,
    DateRange,
    DebtStatus,
    EntityScope,
    EntityType,
    EntryKind,
    MovementType,
    PeriodPreset,
    ProductRanking,
    ReportFilter,
    ReportPeriod,
    StockStatus,
)
