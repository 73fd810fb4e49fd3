"""
API Routers - Report endpoints for the dashboard and report pages.

Every report accepts the same window parameters: either a `preset`
(today, thisWeek, lastMonth...) or explicit `start_date`/`end_date` days.
Without either, the window is the current month up to today.
"""

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import get_report_engine
from app.application.dto.report_dto import (
    BalanceSheetDTO,
    CashAccountBalanceDTO,
    CashCategoryDTO,
    CashFlowSummaryDTO,
    CashFlowTrendDTO,
    CashForecastDTO,
    CashMovementDTO,
    CustomerDebtDTO,
    CustomerReportDTO,
    CustomerSalesDTO,
    CustomerSummaryDTO,
    DailyCashSummaryDTO,
    DashboardDTO,
    DebtAgingDTO,
    DebtSummaryDTO,
    ExpenseCategoryDTO,
    FinancialSummaryDTO,
    IncomeStatementDTO,
    InventoryItemDTO,
    InventoryMovementDTO,
    InventoryMovementSummaryDTO,
    InventorySummaryDTO,
    LowStockDTO,
    PaymentDTO,
    PresetRangeDTO,
    ProductSalesDTO,
    ProfitLossDTO,
    ProfitTrendDTO,
    QuickStatsDTO,
    RevenuePeriodDTO,
    SalesSummaryDTO,
    SalesTrendDTO,
    SupplierBalanceDTO,
    TopProductDTO,
    ValuationDTO,
)
from app.core.config import Settings, get_settings
from app.core.security import Permission, require_permission
from app.domain.errors import InvalidArgumentError
from app.domain.export import build_report_table
from app.domain.periods import end_of_day, filter_for_preset, resolve, start_of_day
from app.domain.reports import ReportQueryEngine
from app.domain.value_objects import EntityScope, EntityType, ReportFilter
from app.infrastructure.export import get_export_adapter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["Reports"],
    dependencies=[Depends(require_permission(Permission.REPORT_VIEW))]
)


def get_report_filter(
    start_date: date | None = Query(None, description="First day (inclusive)"),
    end_date: date | None = Query(None, description="Last day (inclusive)"),
    preset: str | None = Query(None, description="today, yesterday, thisWeek, lastWeek, thisMonth, lastMonth, thisYear, lastYear"),
    period: str = Query("monthly", description="daily, weekly, monthly, quarterly, yearly"),
    entity_type: str | None = Query(None, description="Restrict to customer, supplier or cash_account"),
    entity_id: int | None = Query(None, description="Restrict to one entity")
) -> ReportFilter:
    """Dependency - Build and validate the report window."""
    scope = None
    if entity_type is not None or entity_id is not None:
        try:
            scope = EntityScope(EntityType(entity_type) if entity_type else None, entity_id)
        except ValueError:
            raise InvalidArgumentError(f"Unknown entity type: {entity_type!r}") from None

    if preset:
        return filter_for_preset(preset, period, entity_scope=scope)

    today = date.today()
    return ReportFilter(
        start_date=start_of_day(start_date or today.replace(day=1)),
        end_date=end_of_day(end_date or today),
        period=period,
        entity_scope=scope,
    )


def _limit(limit: int | None, settings: Settings) -> int:
    return settings.report_default_limit if limit is None else limit


# --- Dashboard & periods ----------------------------------------------------

@router.get("/dashboard", response_model=DashboardDTO)
def get_dashboard(engine: ReportQueryEngine = Depends(get_report_engine)):
    """Today and month-to-date figures for the landing page."""
    return DashboardDTO.model_validate(engine.dashboard())


@router.get("/periods/{preset}", response_model=PresetRangeDTO)
def get_preset_range(preset: str):
    """Resolve a period preset against the current time."""
    date_range = resolve(preset)
    return PresetRangeDTO(preset=preset, start=date_range.start, end=date_range.end)


# --- Sales ------------------------------------------------------------------

@router.get("/sales/summary", response_model=SalesSummaryDTO)
def get_sales_summary(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return SalesSummaryDTO.model_validate(engine.sales_summary(report_filter))


@router.get("/sales/by-customer", response_model=list[CustomerSalesDTO])
def get_sales_by_customer(
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.sales_by_customer(report_filter, _limit(limit, settings))
    return [CustomerSalesDTO.model_validate(row) for row in rows]


@router.get("/sales/by-product", response_model=list[ProductSalesDTO])
def get_sales_by_product(
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.sales_by_product(report_filter, _limit(limit, settings))
    return [ProductSalesDTO.model_validate(row) for row in rows]


@router.get("/sales/top-products", response_model=list[TopProductDTO])
def get_top_products(
    limit: int = Query(10, ge=0, le=100),
    sort_by: str = Query("quantity", description="quantity or revenue"),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    rows = engine.top_products(report_filter, limit, sort_by)
    return [TopProductDTO.model_validate(row) for row in rows]


@router.get("/sales/trend", response_model=list[SalesTrendDTO])
def get_sales_trend(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [SalesTrendDTO.model_validate(point) for point in engine.sales_trend(report_filter)]


@router.get("/sales/quick-stats", response_model=QuickStatsDTO)
def get_quick_stats(engine: ReportQueryEngine = Depends(get_report_engine)):
    return QuickStatsDTO.model_validate(engine.quick_stats())


# --- Customers and debts ----------------------------------------------------

@router.get("/customers/summary", response_model=CustomerSummaryDTO)
def get_customer_summary(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return CustomerSummaryDTO.model_validate(engine.customer_summary(report_filter))


@router.get("/customers/report", response_model=list[CustomerReportDTO])
def get_customer_report(
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.customer_report(report_filter, _limit(limit, settings))
    return [CustomerReportDTO.model_validate(row) for row in rows]


@router.get("/customers/payments", response_model=list[PaymentDTO])
def get_payment_history(
    customer_id: int | None = Query(None),
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.payment_history(report_filter, customer_id, _limit(limit, settings))
    return [PaymentDTO.model_validate(row) for row in rows]


@router.get("/debts/summary", response_model=DebtSummaryDTO)
def get_debt_summary(
    as_of: date | None = Query(None),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return DebtSummaryDTO.model_validate(engine.debt_summary(as_of))


@router.get("/debts/by-customer", response_model=list[CustomerDebtDTO])
def get_debt_by_customer(
    as_of: date | None = Query(None),
    status: str | None = Query(None, description="current, overdue or critical"),
    limit: int | None = Query(None, ge=0, le=1000),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.debt_by_customer(as_of, status, _limit(limit, settings))
    return [CustomerDebtDTO.model_validate(row) for row in rows]


@router.get("/debts/aging", response_model=DebtAgingDTO)
def get_debt_aging(
    as_of: date | None = Query(None),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return DebtAgingDTO.model_validate(engine.debt_aging(as_of))


@router.get("/suppliers/balances", response_model=list[SupplierBalanceDTO])
def get_supplier_balances(
    limit: int | None = Query(None, ge=0, le=1000),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [SupplierBalanceDTO.model_validate(row) for row in engine.supplier_balances(limit)]


# --- Cash flow --------------------------------------------------------------

@router.get("/cashflow/summary", response_model=CashFlowSummaryDTO)
def get_cashflow_summary(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return CashFlowSummaryDTO.model_validate(engine.cashflow_summary(report_filter))


@router.get("/cashflow/trend", response_model=list[CashFlowTrendDTO])
def get_cashflow_trend(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [CashFlowTrendDTO.model_validate(p) for p in engine.cashflow_trend(report_filter)]


@router.get("/cashflow/by-category", response_model=list[CashCategoryDTO])
def get_cashflow_by_category(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [CashCategoryDTO.model_validate(r) for r in engine.cashflow_by_category(report_filter)]


@router.get("/cashflow/movements", response_model=list[CashMovementDTO])
def get_cash_movements(
    direction: str | None = Query(None, description="inflow or outflow"),
    category: str | None = Query(None),
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.cash_movements(report_filter, direction, category, _limit(limit, settings))
    return [CashMovementDTO.model_validate(row) for row in rows]


@router.get("/cashflow/accounts", response_model=list[CashAccountBalanceDTO])
def get_balance_by_account(engine: ReportQueryEngine = Depends(get_report_engine)):
    return [CashAccountBalanceDTO.model_validate(row) for row in engine.balance_by_account()]


@router.get("/cashflow/daily", response_model=DailyCashSummaryDTO)
def get_daily_cash_summary(
    day: date | None = Query(None),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return DailyCashSummaryDTO.model_validate(engine.daily_cash_summary(day))


@router.get("/cashflow/forecast", response_model=CashForecastDTO)
def get_cash_forecast(
    days: int = Query(30, ge=1, le=366),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return CashForecastDTO.model_validate(engine.cash_forecast(days))


# --- Inventory --------------------------------------------------------------

@router.get("/inventory/summary", response_model=InventorySummaryDTO)
def get_inventory_summary(engine: ReportQueryEngine = Depends(get_report_engine)):
    return InventorySummaryDTO.model_validate(engine.inventory_summary())


@router.get("/inventory/details", response_model=list[InventoryItemDTO])
def get_inventory_details(
    status: str | None = Query(None, description="in_stock, low_stock or out_of_stock"),
    search: str | None = Query(None),
    limit: int | None = Query(None, ge=0, le=1000),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.inventory_details(status, search, _limit(limit, settings))
    return [InventoryItemDTO.model_validate(row) for row in rows]


@router.get("/inventory/movements", response_model=list[InventoryMovementDTO])
def get_inventory_movements(
    movement_type: str | None = Query(None, description="in, out or adjustment"),
    item_id: int | None = Query(None),
    limit: int | None = Query(None, ge=0, le=1000),
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine),
    settings: Settings = Depends(get_settings)
):
    rows = engine.inventory_movements(report_filter, movement_type, item_id, _limit(limit, settings))
    return [InventoryMovementDTO.model_validate(row) for row in rows]


@router.get("/inventory/valuation", response_model=list[ValuationDTO])
def get_inventory_valuation(engine: ReportQueryEngine = Depends(get_report_engine)):
    return [ValuationDTO.model_validate(row) for row in engine.inventory_valuation()]


@router.get("/inventory/low-stock", response_model=list[LowStockDTO])
def get_low_stock(engine: ReportQueryEngine = Depends(get_report_engine)):
    return [LowStockDTO.model_validate(row) for row in engine.low_stock()]


@router.get("/inventory/movement-summary", response_model=InventoryMovementSummaryDTO)
def get_inventory_movement_summary(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return InventoryMovementSummaryDTO.model_validate(engine.inventory_movement_summary(report_filter))


# --- Financial statements ---------------------------------------------------

@router.get("/financial/summary", response_model=FinancialSummaryDTO)
def get_financial_summary(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return FinancialSummaryDTO.model_validate(engine.financial_summary(report_filter))


@router.get("/financial/revenue", response_model=list[RevenuePeriodDTO])
def get_revenue_by_period(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [RevenuePeriodDTO.model_validate(row) for row in engine.revenue_by_period(report_filter)]


@router.get("/financial/expenses", response_model=list[ExpenseCategoryDTO])
def get_expense_breakdown(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [ExpenseCategoryDTO.model_validate(row) for row in engine.expense_breakdown(report_filter)]


@router.get("/financial/profit-loss", response_model=ProfitLossDTO)
def get_profit_loss(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return ProfitLossDTO.model_validate(engine.profit_loss(report_filter))


@router.get("/financial/income-statement", response_model=IncomeStatementDTO)
def get_income_statement(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return IncomeStatementDTO.model_validate(engine.income_statement(report_filter))


@router.get("/financial/balance-sheet", response_model=BalanceSheetDTO)
def get_balance_sheet(
    as_of: date | None = Query(None, description="Report date; defaults to now"),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    """Positions at the end of as_of (ledger-derived)."""
    return BalanceSheetDTO.model_validate(engine.balance_sheet(end_of_day(as_of) if as_of else None))


@router.get("/financial/profit-trend", response_model=list[ProfitTrendDTO])
def get_profit_trend(
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    return [ProfitTrendDTO.model_validate(point) for point in engine.profit_trend(report_filter)]


# --- Export -----------------------------------------------------------------

@router.get(
    "/export/{report_type}/{fmt}",
    dependencies=[Depends(require_permission(Permission.REPORT_EXPORT))]
)
def export_report(
    report_type: str,
    fmt: str,
    report_filter: ReportFilter = Depends(get_report_filter),
    engine: ReportQueryEngine = Depends(get_report_engine)
):
    """Download a report as a document (csv)."""
    adapter = get_export_adapter(fmt)
    table = build_report_table(engine, report_type, report_filter)
    content = adapter.export(table)
    filename = f"{report_type}_{datetime.now():%Y%m%d}.{adapter.format}"
    logger.info("Exported %s as %s: %d rows", report_type, adapter.format, len(table.rows))
    return Response(
        content=content,
        media_type=adapter.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
