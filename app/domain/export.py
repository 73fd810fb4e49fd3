"""
Report Export - Tabular datasets handed to export adapters.

Any aggregate dataclass (or list of them) can be flattened into a
ReportTable; adapters only ever see columns and rows.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, get_origin

from .aggregates import (
    PERCENT_FIELDS,
    CashCategoryRow,
    CashFlowSummary,
    CashFlowTrendPoint,
    CashMovementRow,
    CustomerDebtRow,
    CustomerReportRow,
    CustomerSalesRow,
    DebtAgeBucket,
    ExpenseCategoryRow,
    FinancialSummary,
    IncomeStatement,
    InventoryItemRow,
    InventoryMovementRow,
    LowStockRow,
    PaymentRow,
    ProductSalesRow,
    ProfitLoss,
    ProfitTrendPoint,
    RevenuePeriodRow,
    SalesSummary,
    SalesTrendPoint,
    SupplierBalanceRow,
    TopProductRow,
    ValuationRow,
)
from .errors import InvalidArgumentError
from .reports import ReportQueryEngine
from .value_objects import DateRange, ReportFilter

PERCENT_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class ReportTable:
    """Ordered records with named fields."""
    title: str
    columns: list[str]
    rows: list[list[Any]]


class ExportAdapter(ABC):
    """Boundary - Renders a ReportTable into a document format."""

    format: str
    media_type: str

    @abstractmethod
    def export(self, table: ReportTable) -> bytes:
        ...


def _columns(row_type: type) -> list[str]:
    columns = []
    for f in fields(row_type):
        if f.type is DateRange:
            columns.extend([f"{f.name}_start", f"{f.name}_end"])
        elif get_origin(f.type) is not list:
            columns.append(f.name)
    return columns


def _cell(name: str, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal) and name in PERCENT_FIELDS:
        return value.quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)
    return value


def _row(record: Any) -> list[Any]:
    row = []
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, DateRange):
            row.extend([_cell(f.name, value.start), _cell(f.name, value.end)])
        elif not isinstance(value, list):
            row.append(_cell(f.name, value))
    return row


def to_table(title: str, data: Any, row_type: type) -> ReportTable:
    """
    Flatten an aggregate (or a list of aggregates of row_type) into a table.

    DateRange fields become <name>_start/<name>_end columns. Nested lists are
    left out; export them as their own table.
    """
    if not is_dataclass(row_type):
        raise InvalidArgumentError(f"{row_type!r} is not a report row type")
    records = data if isinstance(data, list) else [data]
    return ReportTable(
        title=title,
        columns=_columns(row_type),
        rows=[_row(record) for record in records],
    )


ReportSource = Callable[[ReportQueryEngine, ReportFilter], Any]

# report_type -> (row type, query)
EXPORTABLE_REPORTS: dict[str, tuple[type, ReportSource]] = {
    "sales_summary": (SalesSummary, lambda e, f: e.sales_summary(f)),
    "sales_by_customer": (CustomerSalesRow, lambda e, f: e.sales_by_customer(f, limit=None)),
    "sales_by_product": (ProductSalesRow, lambda e, f: e.sales_by_product(f, limit=None)),
    "top_products": (TopProductRow, lambda e, f: e.top_products(f)),
    "sales_trend": (SalesTrendPoint, lambda e, f: e.sales_trend(f)),
    "customer_report": (CustomerReportRow, lambda e, f: e.customer_report(f, limit=None)),
    "debt_by_customer": (
        CustomerDebtRow, lambda e, f: e.debt_by_customer(as_of=f.end_date, limit=None)
    ),
    "debt_aging": (DebtAgeBucket, lambda e, f: e.debt_aging(as_of=f.end_date).by_age),
    "payment_history": (PaymentRow, lambda e, f: e.payment_history(f, limit=None)),
    "supplier_balances": (SupplierBalanceRow, lambda e, f: e.supplier_balances()),
    "cashflow_summary": (CashFlowSummary, lambda e, f: e.cashflow_summary(f)),
    "cashflow_trend": (CashFlowTrendPoint, lambda e, f: e.cashflow_trend(f)),
    "cashflow_by_category": (CashCategoryRow, lambda e, f: e.cashflow_by_category(f)),
    "cash_movements": (CashMovementRow, lambda e, f: e.cash_movements(f, limit=None)),
    "inventory_details": (InventoryItemRow, lambda e, f: e.inventory_details(limit=None)),
    "inventory_movements": (
        InventoryMovementRow, lambda e, f: e.inventory_movements(f, limit=None)
    ),
    "inventory_valuation": (ValuationRow, lambda e, f: e.inventory_valuation()),
    "low_stock": (LowStockRow, lambda e, f: e.low_stock()),
    "financial_summary": (FinancialSummary, lambda e, f: e.financial_summary(f)),
    "revenue_by_period": (RevenuePeriodRow, lambda e, f: e.revenue_by_period(f)),
    "expense_breakdown": (ExpenseCategoryRow, lambda e, f: e.expense_breakdown(f)),
    "profit_loss": (ProfitLoss, lambda e, f: e.profit_loss(f)),
    "income_statement": (IncomeStatement, lambda e, f: e.income_statement(f)),
    "profit_trend": (ProfitTrendPoint, lambda e, f: e.profit_trend(f)),
}


def build_report_table(
    engine: ReportQueryEngine,
    report_type: str,
    report_filter: ReportFilter
) -> ReportTable:
    try:
        row_type, source = EXPORTABLE_REPORTS[report_type]
    except KeyError:
        raise InvalidArgumentError(f"Unknown report type: {report_type!r}") from None
    return to_table(report_type, source(engine, report_filter), row_type)
