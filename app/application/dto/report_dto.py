"""
API DTOs - Report responses.

Money is serialized as a decimal string; percentages are rounded to two
places on the way out.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer

from app.domain.value_objects import CashDirection, DebtStatus, MovementType, StockStatus

Percent = Annotated[
    Decimal,
    PlainSerializer(
        lambda value: value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        return_type=Decimal,
    ),
]


class ReportDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PeriodDTO(ReportDTO):
    """DTO - Closed date range."""
    start: datetime
    end: datetime


class PresetRangeDTO(ReportDTO):
    """DTO - Resolved period preset."""
    preset: str
    start: datetime
    end: datetime


# --- Sales ------------------------------------------------------------------

class SalesSummaryDTO(ReportDTO):
    period: PeriodDTO
    total_sales: Decimal
    total_invoices: int
    average_invoice_value: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    discount_amount: Decimal
    previous_sales: Decimal
    sales_growth: Percent
    active_customers: int


class CustomerSalesDTO(ReportDTO):
    customer_id: int | None
    customer_name: str
    customer_phone: str | None
    total_purchases: Decimal
    total_paid: Decimal
    total_debt: Decimal
    invoice_count: int
    last_purchase_date: datetime | None
    average_order_value: Decimal
    percentage: Percent


class ProductSalesDTO(ReportDTO):
    product_id: int
    product_name: str
    category: str | None
    quantity_sold: Decimal
    total_revenue: Decimal
    average_price: Decimal
    order_count: int
    percentage: Percent


class TopProductDTO(ReportDTO):
    rank: int
    product_id: int
    product_name: str
    quantity_sold: Decimal
    total_revenue: Decimal
    average_price: Decimal


class SalesTrendDTO(ReportDTO):
    period: str
    sales: Decimal
    invoice_count: int
    customer_count: int
    average_sale: Decimal


class PeriodSalesDTO(ReportDTO):
    sales: Decimal
    invoices: int


class QuickStatsDTO(ReportDTO):
    today: PeriodSalesDTO
    this_week: PeriodSalesDTO
    this_month: PeriodSalesDTO


# --- Customers and debts ----------------------------------------------------

class CustomerSummaryDTO(ReportDTO):
    period: PeriodDTO
    total_customers: int
    active_customers: int
    new_customers: int
    total_revenue: Decimal
    average_customer_value: Decimal
    customers_with_debt: int


class CustomerReportDTO(ReportDTO):
    customer_id: int
    customer_name: str
    customer_phone: str | None
    customer_since: datetime | None
    total_purchases: Decimal
    total_paid: Decimal
    total_debt: Decimal
    invoice_count: int
    last_purchase_date: datetime | None


class DebtSummaryDTO(ReportDTO):
    as_of: date
    total_debts: Decimal
    total_repaid: Decimal
    total_pending: Decimal
    overdue_amount: Decimal
    debtor_count: int
    overdue_count: int
    average_debt_age: Decimal
    collection_rate: Percent
    customer_ledger_balance: Decimal
    supplier_ledger_balance: Decimal


class CustomerDebtDTO(ReportDTO):
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


class DebtStatusBucketDTO(ReportDTO):
    status: DebtStatus
    total_amount: Decimal
    debt_count: int
    customer_count: int


class DebtAgeBucketDTO(ReportDTO):
    age_range: str
    min_days: int
    max_days: int | None
    total_amount: Decimal
    debt_count: int
    customer_count: int


class DebtAgingDTO(ReportDTO):
    as_of: date
    total_amount: Decimal
    by_status: list[DebtStatusBucketDTO]
    by_age: list[DebtAgeBucketDTO]


class PaymentDTO(ReportDTO):
    entry_id: int
    customer_id: int
    customer_name: str
    amount: Decimal
    occurred_at: datetime
    related_invoice_id: int | None
    description: str | None


class SupplierBalanceDTO(ReportDTO):
    supplier_id: int
    supplier_name: str
    balance: Decimal
    last_recalculated_at: datetime | None
    percentage: Percent


# --- Cash flow --------------------------------------------------------------

class CashFlowSummaryDTO(ReportDTO):
    period: PeriodDTO
    opening_balance: Decimal
    total_inflows: Decimal
    total_outflows: Decimal
    net_cash_flow: Decimal
    closing_balance: Decimal
    inflow_count: int
    outflow_count: int


class CashFlowTrendDTO(ReportDTO):
    period: str
    inflows: Decimal
    outflows: Decimal
    net_flow: Decimal
    balance: Decimal
    inflow_count: int
    outflow_count: int


class CashCategoryDTO(ReportDTO):
    category: str
    direction: CashDirection
    amount: Decimal
    transaction_count: int
    percentage: Percent


class CashMovementDTO(ReportDTO):
    entry_id: int
    cash_account_id: int
    occurred_at: datetime
    direction: CashDirection
    kind: str
    category: str
    amount: Decimal
    description: str | None
    related_invoice_id: int | None


class CashAccountBalanceDTO(ReportDTO):
    account_id: int
    account_name: str
    balance: Decimal
    last_recalculated_at: datetime | None
    transaction_count: int
    percentage: Percent


class DailyCashSummaryDTO(ReportDTO):
    day: date
    total_inflows: Decimal
    total_outflows: Decimal
    net_flow: Decimal
    inflow_count: int
    outflow_count: int
    closing_balance: Decimal


class ForecastPointDTO(ReportDTO):
    day: date
    projected_inflow: Decimal
    projected_outflow: Decimal
    projected_balance: Decimal


class CashForecastDTO(ReportDTO):
    current_balance: Decimal
    average_daily_inflow: Decimal
    average_daily_outflow: Decimal
    average_daily_net_flow: Decimal
    points: list[ForecastPointDTO]


# --- Inventory --------------------------------------------------------------

class InventorySummaryDTO(ReportDTO):
    total_items: int
    total_value: Decimal
    total_quantity: Decimal
    in_stock_items: int
    low_stock_items: int
    out_of_stock_items: int
    average_item_value: Decimal
    categories_count: int


class InventoryItemDTO(ReportDTO):
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


class InventoryMovementDTO(ReportDTO):
    movement_id: int
    occurred_at: datetime
    item_id: int
    item_name: str
    movement_type: MovementType
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    notes: str | None


class ValuationDTO(ReportDTO):
    category: str
    item_count: int
    total_quantity: Decimal
    total_value: Decimal
    average_cost: Decimal
    percentage: Percent


class LowStockDTO(ReportDTO):
    item_id: int
    item_name: str
    unit: str | None
    quantity: Decimal
    reorder_level: Decimal
    unit_cost: Decimal
    status: StockStatus
    shortage: Decimal


class MovementTypeTotalsDTO(ReportDTO):
    movement_type: MovementType
    count: int
    quantity: Decimal
    value: Decimal


class InventoryMovementSummaryDTO(ReportDTO):
    period: PeriodDTO
    total_in: Decimal
    total_out: Decimal
    total_in_value: Decimal
    total_out_value: Decimal
    net_change: Decimal
    movement_count: int
    by_type: list[MovementTypeTotalsDTO]


# --- Financial statements ---------------------------------------------------

class FinancialSummaryDTO(ReportDTO):
    period: PeriodDTO
    total_revenue: Decimal
    cost_of_goods_sold: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    profit_margin: Percent
    total_receivables: Decimal
    total_payables: Decimal
    total_cash: Decimal
    previous_revenue: Decimal
    revenue_growth: Percent


class RevenuePeriodDTO(ReportDTO):
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    invoice_count: int


class ExpenseCategoryDTO(ReportDTO):
    category: str
    amount: Decimal
    count: int
    percentage: Percent


class ProfitLossDTO(ReportDTO):
    period: PeriodDTO
    total_revenue: Decimal
    cost_of_goods_sold: Decimal
    gross_profit: Decimal
    gross_margin: Percent
    operating_expenses: Decimal
    net_profit: Decimal
    net_margin: Percent
    previous_net_profit: Decimal
    profit_growth: Percent


class IncomeStatementDTO(ReportDTO):
    period: PeriodDTO
    revenue: Decimal
    cost_of_sales: Decimal
    gross_profit: Decimal
    operating_expenses: Decimal
    operating_income: Decimal
    other_income: Decimal
    other_expenses: Decimal
    net_income: Decimal


class BalanceSheetDTO(ReportDTO):
    as_of: datetime
    cash: Decimal
    receivables: Decimal
    inventory: Decimal
    total_current_assets: Decimal
    fixed_assets: Decimal
    total_assets: Decimal
    payables: Decimal
    total_liabilities: Decimal
    equity: Decimal


class ProfitTrendDTO(ReportDTO):
    period: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    margin: Percent


# --- Dashboard --------------------------------------------------------------

class DashboardDTO(ReportDTO):
    """DTO - Landing page figures."""
    today_sales: Decimal
    today_payments_received: Decimal
    today_expenses: Decimal
    today_profit: Decimal
    month_sales: Decimal
    month_expenses: Decimal
    month_profit: Decimal
    month_invoices: int
    cash_total: Decimal
    customers_debt: Decimal
    suppliers_debt: Decimal
    low_stock_items: int
