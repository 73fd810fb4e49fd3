"""
Report Aggregates - Derived, never persisted report datasets.

Every monetary field is a Decimal. Percentages keep full precision here and
are only rounded when serialized.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from .value_objects import ZERO, CashDirection, DateRange, DebtStatus, MovementType, StockStatus

# Fields holding percentages; rounded to two places on output.
PERCENT_FIELDS = frozenset({
    "percentage",
    "sales_growth",
    "revenue_growth",
    "profit_margin",
    "gross_margin",
    "net_margin",
    "profit_growth",
    "collection_rate",
    "margin",
})


# --- Sales ------------------------------------------------------------------

@dataclass(frozen=True)
class SalesSummary:
    period: DateRange
    total_sales: Decimal = ZERO
    total_invoices: int = 0
    average_invoice_value: Decimal = ZERO
    paid_amount: Decimal = ZERO
    pending_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    previous_sales: Decimal = ZERO
    sales_growth: Decimal = ZERO
    active_customers: int = 0


@dataclass(frozen=True)
class CustomerSalesRow:
    customer_id: int | None
    customer_name: str
    customer_phone: str | None
    total_purchases: Decimal
    total_paid: Decimal
    total_debt: Decimal
    invoice_count: int
    last_purchase_date: datetime | None
    average_order_value: Decimal
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class ProductSalesRow:
    product_id: int
    product_name: str
    category: str | None
    quantity_sold: Decimal
    total_revenue: Decimal
    average_price: Decimal
    order_count: int
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class TopProductRow:
    rank: int
    product_id: int
    product_name: str
    quantity_sold: Decimal
    total_revenue: Decimal
    average_price: Decimal


@dataclass(frozen=True)
class SalesTrendPoint:
    period: str
    sales: Decimal
    invoice_count: int
    customer_count: int
    average_sale: Decimal


@dataclass(frozen=True)
class PeriodSales:
    sales: Decimal = ZERO
    invoices: int = 0


@dataclass(frozen=True)
class QuickStats:
    today: PeriodSales
    this_week: PeriodSales
    this_month: PeriodSales


# --- Customers and debts ----------------------------------------------------

@dataclass(frozen=True)
class CustomerSummary:
    period: DateRange
    total_customers: int = 0
    active_customers: int = 0
    new_customers: int = 0
    total_revenue: Decimal = ZERO
    average_customer_value: Decimal = ZERO
    customers_with_debt: int = 0


@dataclass(frozen=True)
class CustomerReportRow:
    customer_id: int
    customer_name: str
    customer_phone: str | None
    customer_since: datetime | None
    total_purchases: Decimal
    total_paid: Decimal
    total_debt: Decimal
    invoice_count: int
    last_purchase_date: datetime | None


@dataclass(frozen=True)
class DebtSummary:
    as_of: date
    total_debts: Decimal = ZERO
    total_repaid: Decimal = ZERO
    total_pending: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    debtor_count: int = 0
    overdue_count: int = 0
    average_debt_age: Decimal = ZERO
    collection_rate: Decimal = ZERO
    customer_ledger_balance: Decimal = ZERO
    supplier_ledger_balance: Decimal = ZERO


@dataclass(frozen=True)
class CustomerDebtRow:
    customer_id: int
    customer_name: str
    customer_phone: str | None
    total_debt: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    debt_count: int
    last_debt_date: date | None
    days_overdue: int
    status: DebtStatus


@dataclass(frozen=True)
class DebtStatusBucket:
    status: DebtStatus
    total_amount: Decimal = ZERO
    debt_count: int = 0
    customer_count: int = 0


@dataclass(frozen=True)
class DebtAgeBucket:
    age_range: str
    min_days: int
    max_days: int | None
    total_amount: Decimal = ZERO
    debt_count: int = 0
    customer_count: int = 0


@dataclass(frozen=True)
class DebtAging:
    as_of: date
    total_amount: Decimal = ZERO
    by_status: list[DebtStatusBucket] = field(default_factory=list)
    by_age: list[DebtAgeBucket] = field(default_factory=list)


@dataclass(frozen=True)
class PaymentRow:
    entry_id: int
    customer_id: int
    customer_name: str
    amount: Decimal
    occurred_at: datetime
    related_invoice_id: int | None
    description: str | None


@dataclass(frozen=True)
class SupplierBalanceRow:
    supplier_id: int
    supplier_name: str
    balance: Decimal
    last_recalculated_at: datetime | None
    percentage: Decimal = ZERO


# --- Cash flow --------------------------------------------------------------

@dataclass(frozen=True)
class CashFlowSummary:
    period: DateRange
    opening_balance: Decimal = ZERO
    total_inflows: Decimal = ZERO
    total_outflows: Decimal = ZERO
    net_cash_flow: Decimal = ZERO
    closing_balance: Decimal = ZERO
    inflow_count: int = 0
    outflow_count: int = 0


@dataclass(frozen=True)
class CashFlowTrendPoint:
    period: str
    inflows: Decimal
    outflows: Decimal
    net_flow: Decimal
    balance: Decimal
    inflow_count: int
    outflow_count: int


@dataclass(frozen=True)
class CashCategoryRow:
    category: str
    direction: CashDirection
    amount: Decimal
    transaction_count: int
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class CashMovementRow:
    entry_id: int
    cash_account_id: int
    occurred_at: datetime
    direction: CashDirection
    kind: str
    category: str
    amount: Decimal
    description: str | None
    related_invoice_id: int | None


@dataclass(frozen=True)
class CashAccountBalanceRow:
    account_id: int
    account_name: str
    balance: Decimal
    last_recalculated_at: datetime | None
    transaction_count: int
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class DailyCashSummary:
    day: date
    total_inflows: Decimal = ZERO
    total_outflows: Decimal = ZERO
    net_flow: Decimal = ZERO
    inflow_count: int = 0
    outflow_count: int = 0
    closing_balance: Decimal = ZERO


@dataclass(frozen=True)
class ForecastPoint:
    day: date
    projected_inflow: Decimal
    projected_outflow: Decimal
    projected_balance: Decimal


@dataclass(frozen=True)
class CashForecast:
    current_balance: Decimal = ZERO
    average_daily_inflow: Decimal = ZERO
    average_daily_outflow: Decimal = ZERO
    average_daily_net_flow: Decimal = ZERO
    points: list[ForecastPoint] = field(default_factory=list)


# --- Inventory --------------------------------------------------------------

@dataclass(frozen=True)
class InventorySummary:
    total_items: int = 0
    total_value: Decimal = ZERO
    total_quantity: Decimal = ZERO
    in_stock_items: int = 0
    low_stock_items: int = 0
    out_of_stock_items: int = 0
    average_item_value: Decimal = ZERO
    categories_count: int = 0


@dataclass(frozen=True)
class InventoryItemRow:
    item_id: int
    item_name: str
    unit: str | None
    category: str | None
    quantity: Decimal
    unit_cost: Decimal
    total_value: Decimal
    reorder_level: Decimal
    status: StockStatus
    last_updated: datetime | None


@dataclass(frozen=True)
class InventoryMovementRow:
    movement_id: int
    occurred_at: datetime
    item_id: int
    item_name: str
    movement_type: MovementType
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    notes: str | None


@dataclass(frozen=True)
class ValuationRow:
    category: str
    item_count: int
    total_quantity: Decimal
    total_value: Decimal
    average_cost: Decimal
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class LowStockRow:
    item_id: int
    item_name: str
    unit: str | None
    quantity: Decimal
    reorder_level: Decimal
    unit_cost: Decimal
    status: StockStatus
    shortage: Decimal


@dataclass(frozen=True)
class MovementTypeTotals:
    movement_type: MovementType
    count: int = 0
    quantity: Decimal = ZERO
    value: Decimal = ZERO


@dataclass(frozen=True)
class InventoryMovementSummary:
    period: DateRange
    total_in: Decimal = ZERO
    total_out: Decimal = ZERO
    total_in_value: Decimal = ZERO
    total_out_value: Decimal = ZERO
    net_change: Decimal = ZERO
    movement_count: int = 0
    by_type: list[MovementTypeTotals] = field(default_factory=list)


# --- Financial statements ---------------------------------------------------

@dataclass(frozen=True)
class FinancialSummary:
    period: DateRange
    total_revenue: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO
    total_receivables: Decimal = ZERO
    total_payables: Decimal = ZERO
    total_cash: Decimal = ZERO
    previous_revenue: Decimal = ZERO
    revenue_growth: Decimal = ZERO


@dataclass(frozen=True)
class RevenuePeriodRow:
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    invoice_count: int


@dataclass(frozen=True)
class ExpenseCategoryRow:
    category: str
    amount: Decimal
    count: int
    percentage: Decimal = ZERO


@dataclass(frozen=True)
class ProfitLoss:
    period: DateRange
    total_revenue: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    gross_profit: Decimal = ZERO
    gross_margin: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    net_profit: Decimal = ZERO
    net_margin: Decimal = ZERO
    previous_net_profit: Decimal = ZERO
    profit_growth: Decimal = ZERO


@dataclass(frozen=True)
class IncomeStatement:
    period: DateRange
    revenue: Decimal = ZERO
    cost_of_sales: Decimal = ZERO
    gross_profit: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    operating_income: Decimal = ZERO
    other_income: Decimal = ZERO
    other_expenses: Decimal = ZERO
    net_income: Decimal = ZERO


@dataclass(frozen=True)
class BalanceSheet:
    as_of: datetime
    cash: Decimal = ZERO
    receivables: Decimal = ZERO
    inventory: Decimal = ZERO
    total_current_assets: Decimal = ZERO
    fixed_assets: Decimal = ZERO
    total_assets: Decimal = ZERO
    payables: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    equity: Decimal = ZERO


@dataclass(frozen=True)
class ProfitTrendPoint:
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    margin: Decimal


# --- Dashboard --------------------------------------------------------------

@dataclass(frozen=True)
class DashboardSummary:
    today_sales: Decimal = ZERO
    today_payments_received: Decimal = ZERO
    today_expenses: Decimal = ZERO
    today_profit: Decimal = ZERO
    month_sales: Decimal = ZERO
    month_expenses: Decimal = ZERO
    month_profit: Decimal = ZERO
    month_invoices: int = 0
    cash_total: Decimal = ZERO
    customers_debt: Decimal = ZERO
    suppliers_debt: Decimal = ZERO
    low_stock_items: int = 0
