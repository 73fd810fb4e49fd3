"""
Report Query Engine - Read-only aggregates over the ledger, cached balances
and the sales/inventory/expense catalog.

Every query is a pure function of the stored data inside the filter window.
Groupings partition the filtered records exactly; rankings sort descending on
the ranking metric and keep id order for ties before truncating.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import TypeVar

from .aggregates import (
    BalanceSheet,
    CashAccountBalanceRow,
    CashCategoryRow,
    CashFlowSummary,
    CashFlowTrendPoint,
    CashForecast,
    CashMovementRow,
    CustomerDebtRow,
    CustomerReportRow,
    CustomerSalesRow,
    CustomerSummary,
    DailyCashSummary,
    DashboardSummary,
    DebtAgeBucket,
    DebtAging,
    DebtStatusBucket,
    DebtSummary,
    ExpenseCategoryRow,
    FinancialSummary,
    ForecastPoint,
    IncomeStatement,
    InventoryItemRow,
    InventoryMovementRow,
    InventoryMovementSummary,
    InventorySummary,
    LowStockRow,
    MovementTypeTotals,
    PaymentRow,
    PeriodSales,
    ProductSalesRow,
    ProfitLoss,
    ProfitTrendPoint,
    QuickStats,
    RevenuePeriodRow,
    SalesSummary,
    SalesTrendPoint,
    SupplierBalanceRow,
    TopProductRow,
    ValuationRow,
)
from .entities import Expense, InventoryItem, Invoice, InvoiceLine, LedgerEntry, Party
from .errors import InvalidArgumentError
from .periods import bucket_key, end_of_day, previous_range, resolve, start_of_day
from .services import (
    IDebtRepository,
    IEntityRepository,
    IExpenseRepository,
    IInventoryRepository,
    ILedgerRepository,
    ISalesRepository,
    ISnapshotRepository,
)
from .value_objects import (
    ZERO,
    CashDirection,
    DebtStatus,
    EntityScope,
    EntityType,
    EntryKind,
    MovementType,
    PeriodPreset,
    ProductRanking,
    ReportFilter,
    StockStatus,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
CENT = Decimal("0.01")
ONE_MICROSECOND = timedelta(microseconds=1)
DEFAULT_LOW_STOCK_THRESHOLD = Decimal("10")
FORECAST_WINDOW_DAYS = 30
MAX_FORECAST_DAYS = 366
UNCATEGORIZED = "Uncategorized"
WALK_IN_CUSTOMER = "Walk-in customer"

# (min_days, max_days) by debt age; None means open-ended
AGE_RANGES: list[tuple[int, int | None]] = [
    (0, 30),
    (31, 60),
    (61, 90),
    (91, 180),
    (181, 365),
    (366, None),
]

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


def growth(current: Decimal, previous: Decimal) -> Decimal:
    """Percentage change; zero when there is nothing to compare against."""
    if previous == 0:
        return ZERO
    return (current - previous) / previous * HUNDRED


def percentage(part: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return ZERO
    return part / total * HUNDRED


def average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / Decimal(count)).quantize(CENT, rounding=ROUND_HALF_UP)


def classify_debt(days_overdue: int) -> DebtStatus:
    if days_overdue <= 0:
        return DebtStatus.CURRENT
    if days_overdue > 90:
        return DebtStatus.CRITICAL
    if days_overdue > 30:
        return DebtStatus.OVERDUE
    return DebtStatus.CURRENT


def classify_stock(quantity: Decimal, reorder_level: Decimal) -> StockStatus:
    # Negative stock (oversold) counts as out of stock.
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def top_n(rows: Iterable[T], key: Callable[[T], Decimal], limit: int | None) -> list[T]:
    """Sort descending by key; sorted() is stable so ties keep their input order."""
    ranked = sorted(rows, key=key, reverse=True)
    if limit is None:
        return ranked
    return ranked[:limit]


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _check_limit(limit: int | None) -> int | None:
    if limit is not None and limit < 0:
        raise InvalidArgumentError(f"limit must not be negative: {limit}")
    return limit


def _coerce(enum_type: type[E], value: E | str | None) -> E | None:
    if value is None:
        return None
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidArgumentError(f"Invalid {enum_type.__name__}: {value!r}") from None


def _direction(entry: LedgerEntry) -> CashDirection:
    return CashDirection.INFLOW if entry.amount >= 0 else CashDirection.OUTFLOW


def _inflows(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return [e for e in entries if e.amount >= 0]


def _outflows(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return [e for e in entries if e.amount < 0]


class ReportQueryEngine:
    """
    Service - Report datasets for the dashboard and report pages.

    Queries read possibly stale cached balances; callers needing an exact
    balance trigger a recalculation first.
    """

    def __init__(
        self,
        ledger_repo: ILedgerRepository,
        snapshot_repo: ISnapshotRepository,
        entity_repo: IEntityRepository,
        sales_repo: ISalesRepository,
        expense_repo: IExpenseRepository,
        inventory_repo: IInventoryRepository,
        debt_repo: IDebtRepository,
        low_stock_threshold: Decimal = DEFAULT_LOW_STOCK_THRESHOLD,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.ledger_repo = ledger_repo
        self.snapshot_repo = snapshot_repo
        self.entity_repo = entity_repo
        self.sales_repo = sales_repo
        self.expense_repo = expense_repo
        self.inventory_repo = inventory_repo
        self.debt_repo = debt_repo
        self.low_stock_threshold = low_stock_threshold
        self.clock = clock

    # --- shared readers -----------------------------------------------------

    def _invoices(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[Invoice]:
        invoices = self.sales_repo.list_invoices(start, end)
        if scope and scope.entity_type is EntityType.CUSTOMER and scope.entity_id is not None:
            invoices = [i for i in invoices if i.customer_id == scope.entity_id]
        return sorted(invoices, key=lambda i: (i.invoice_date, i.id))

    def _lines(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[InvoiceLine]:
        lines = self.sales_repo.list_invoice_lines(start, end)
        if scope and scope.entity_type is EntityType.CUSTOMER and scope.entity_id is not None:
            invoice_ids = {i.id for i in self._invoices(start, end, scope)}
            lines = [line for line in lines if line.invoice_id in invoice_ids]
        return sorted(lines, key=lambda line: (line.invoice_date, line.id))

    def _customers(self, scope: EntityScope | None = None) -> list[Party]:
        customers = self.entity_repo.list_parties(EntityType.CUSTOMER)
        if scope and scope.entity_type is EntityType.CUSTOMER and scope.entity_id is not None:
            customers = [c for c in customers if c.id == scope.entity_id]
        return customers

    def _expenses(self, start: datetime, end: datetime) -> list[Expense]:
        return sorted(
            self.expense_repo.list_expenses(start, end),
            key=lambda e: (e.expense_date, e.id)
        )

    @staticmethod
    def _cash_scope(scope: EntityScope | None) -> EntityScope:
        if scope and scope.entity_type is EntityType.CASH_ACCOUNT:
            return EntityScope(EntityType.CASH_ACCOUNT, scope.entity_id)
        return EntityScope(EntityType.CASH_ACCOUNT)

    def _cash_entries(
        self,
        start: datetime,
        end: datetime,
        scope: EntityScope | None = None
    ) -> list[LedgerEntry]:
        entries = self.ledger_repo.list_entries_in_range(start, end, self._cash_scope(scope))
        return sorted(entries, key=lambda e: (e.occurred_at, e.id))

    def _ledger_balance_before(self, instant: datetime, scope: EntityScope) -> Decimal:
        return _total(e.amount for e in self.ledger_repo.list_entries_before(instant, scope))

    def _cached_total(self, entity_type: EntityType) -> Decimal:
        return _total(s.balance for s in self.snapshot_repo.list_snapshots(entity_type))

    def _reorder_level(self, item: InventoryItem) -> Decimal:
        if item.reorder_level is None:
            return self.low_stock_threshold
        return item.reorder_level

    def _stock_status(self, item: InventoryItem) -> StockStatus:
        return classify_stock(item.quantity, self._reorder_level(item))

    def _as_of(self, as_of: date | datetime | None) -> date:
        if as_of is None:
            return self.clock().date()
        return as_of.date() if isinstance(as_of, datetime) else as_of

    # --- sales --------------------------------------------------------------

    def sales_summary(self, report_filter: ReportFilter) -> SalesSummary:
        invoices = self._invoices(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        previous = previous_range(report_filter.date_range)
        previous_sales = _total(
            i.total for i in self._invoices(previous.start, previous.end, report_filter.entity_scope)
        )
        total_sales = _total(i.total for i in invoices)

        return SalesSummary(
            period=report_filter.date_range,
            total_sales=total_sales,
            total_invoices=len(invoices),
            average_invoice_value=average(total_sales, len(invoices)),
            paid_amount=_total(i.paid_amount for i in invoices),
            pending_amount=_total(i.remaining_amount for i in invoices),
            discount_amount=_total(i.discount for i in invoices),
            previous_sales=previous_sales,
            sales_growth=growth(total_sales, previous_sales),
            active_customers=len({i.customer_id for i in invoices if i.customer_id is not None}),
        )

    def sales_by_customer(
        self,
        report_filter: ReportFilter,
        limit: int | None = 50
    ) -> list[CustomerSalesRow]:
        _check_limit(limit)
        invoices = self._invoices(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        customers = {p.id: p for p in self.entity_repo.list_parties(EntityType.CUSTOMER)}

        groups: dict[int | None, list[Invoice]] = {}
        for invoice in invoices:
            groups.setdefault(invoice.customer_id, []).append(invoice)

        grand_total = _total(i.total for i in invoices)
        rows = []
        for customer_id in sorted(groups, key=lambda cid: (cid is None, cid or 0)):
            group = groups[customer_id]
            customer = customers.get(customer_id) if customer_id is not None else None
            purchases = _total(i.total for i in group)
            rows.append(CustomerSalesRow(
                customer_id=customer_id,
                customer_name=customer.name if customer else (
                    WALK_IN_CUSTOMER if customer_id is None else f"#{customer_id}"
                ),
                customer_phone=customer.phone if customer else None,
                total_purchases=purchases,
                total_paid=_total(i.paid_amount for i in group),
                total_debt=_total(i.remaining_amount for i in group),
                invoice_count=len(group),
                last_purchase_date=max(i.invoice_date for i in group),
                average_order_value=average(purchases, len(group)),
                percentage=percentage(purchases, grand_total),
            ))

        return top_n(rows, lambda r: r.total_purchases, limit)

    def _product_rows(self, report_filter: ReportFilter) -> list[ProductSalesRow]:
        lines = self._lines(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        products = {p.id: p for p in self.sales_repo.list_products()}

        groups: dict[int, list[InvoiceLine]] = {}
        for line in lines:
            groups.setdefault(line.product_id, []).append(line)

        grand_total = _total(line.revenue for line in lines)
        rows = []
        for product_id in sorted(groups):
            group = groups[product_id]
            product = products.get(product_id)
            revenue = _total(line.revenue for line in group)
            rows.append(ProductSalesRow(
                product_id=product_id,
                product_name=product.name if product else f"#{product_id}",
                category=product.category if product else None,
                quantity_sold=_total(line.quantity for line in group),
                total_revenue=revenue,
                average_price=average(_total(line.unit_price for line in group), len(group)),
                order_count=len({line.invoice_id for line in group}),
                percentage=percentage(revenue, grand_total),
            ))
        return rows

    def sales_by_product(
        self,
        report_filter: ReportFilter,
        limit: int | None = 50
    ) -> list[ProductSalesRow]:
        _check_limit(limit)
        return top_n(self._product_rows(report_filter), lambda r: r.total_revenue, limit)

    def top_products(
        self,
        report_filter: ReportFilter,
        limit: int | None = 10,
        sort_by: ProductRanking | str = ProductRanking.QUANTITY
    ) -> list[TopProductRow]:
        _check_limit(limit)
        sort_by = _coerce(ProductRanking, sort_by)
        if sort_by is ProductRanking.REVENUE:
            ranked = top_n(self._product_rows(report_filter), lambda r: r.total_revenue, limit)
        else:
            ranked = top_n(self._product_rows(report_filter), lambda r: r.quantity_sold, limit)

        return [
            TopProductRow(
                rank=rank,
                product_id=row.product_id,
                product_name=row.product_name,
                quantity_sold=row.quantity_sold,
                total_revenue=row.total_revenue,
                average_price=row.average_price,
            )
            for rank, row in enumerate(ranked, start=1)
        ]

    def sales_trend(self, report_filter: ReportFilter) -> list[SalesTrendPoint]:
        invoices = self._invoices(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        buckets: dict[str, list[Invoice]] = {}
        for invoice in invoices:
            buckets.setdefault(bucket_key(invoice.invoice_date, report_filter.period), []).append(invoice)

        points = []
        for key in sorted(buckets):
            group = buckets[key]
            sales = _total(i.total for i in group)
            points.append(SalesTrendPoint(
                period=key,
                sales=sales,
                invoice_count=len(group),
                customer_count=len({i.customer_id for i in group if i.customer_id is not None}),
                average_sale=average(sales, len(group)),
            ))
        return points

    def quick_stats(self, reference: datetime | None = None) -> QuickStats:
        now = reference if reference is not None else self.clock()

        def period_sales(preset: PeriodPreset) -> PeriodSales:
            window = resolve(preset, now)
            invoices = self._invoices(window.start, window.end)
            return PeriodSales(sales=_total(i.total for i in invoices), invoices=len(invoices))

        return QuickStats(
            today=period_sales(PeriodPreset.TODAY),
            this_week=period_sales(PeriodPreset.THIS_WEEK),
            this_month=period_sales(PeriodPreset.THIS_MONTH),
        )

    # --- customers and debts ------------------------------------------------

    def customer_summary(self, report_filter: ReportFilter) -> CustomerSummary:
        scope = report_filter.entity_scope
        customers = self._customers(scope)
        customer_ids = {c.id for c in customers}
        invoices = self._invoices(report_filter.start_date, report_filter.end_date, scope)
        active = {i.customer_id for i in invoices if i.customer_id is not None}
        revenue = _total(i.total for i in invoices)
        customer_snapshots = [
            s for s in self.snapshot_repo.list_snapshots(EntityType.CUSTOMER)
            if s.entity_id in customer_ids
        ]

        return CustomerSummary(
            period=report_filter.date_range,
            total_customers=len(customers),
            active_customers=len(active),
            new_customers=sum(
                1 for c in customers
                if c.created_at is not None and report_filter.contains(c.created_at)
            ),
            total_revenue=revenue,
            average_customer_value=average(revenue, len(active)),
            customers_with_debt=sum(1 for s in customer_snapshots if s.balance > 0),
        )

    def customer_report(
        self,
        report_filter: ReportFilter,
        limit: int | None = 100
    ) -> list[CustomerReportRow]:
        _check_limit(limit)
        scope = report_filter.entity_scope
        invoices = self._invoices(report_filter.start_date, report_filter.end_date, scope)
        balances = {
            s.entity_id: s.balance
            for s in self.snapshot_repo.list_snapshots(EntityType.CUSTOMER)
        }

        by_customer: dict[int, list[Invoice]] = {}
        for invoice in invoices:
            if invoice.customer_id is not None:
                by_customer.setdefault(invoice.customer_id, []).append(invoice)

        rows = []
        for customer in sorted(self._customers(scope), key=lambda c: c.id):
            group = by_customer.get(customer.id, [])
            rows.append(CustomerReportRow(
                customer_id=customer.id,
                customer_name=customer.name,
                customer_phone=customer.phone,
                customer_since=customer.created_at,
                total_purchases=_total(i.total for i in group),
                total_paid=_total(i.paid_amount for i in group),
                total_debt=balances.get(customer.id, ZERO),
                invoice_count=len(group),
                last_purchase_date=max((i.invoice_date for i in group), default=None),
            ))

        return top_n(rows, lambda r: r.total_purchases, limit)

    def debt_summary(self, as_of: date | datetime | None = None) -> DebtSummary:
        as_of = self._as_of(as_of)
        debts = self.debt_repo.list_debts(open_only=False)
        open_debts = [d for d in debts if not d.is_paid]
        overdue = [d for d in open_debts if d.days_overdue(as_of) > 0]
        total_debts = _total(d.amount for d in debts)
        total_repaid = _total(d.paid_amount for d in debts)

        return DebtSummary(
            as_of=as_of,
            total_debts=total_debts,
            total_repaid=total_repaid,
            total_pending=_total(d.remaining_amount for d in open_debts),
            overdue_amount=_total(d.remaining_amount for d in overdue),
            debtor_count=len({d.customer_id for d in open_debts if d.customer_id is not None}),
            overdue_count=len(overdue),
            average_debt_age=average(
                Decimal(sum(d.age_days(as_of) for d in open_debts)), len(open_debts)
            ),
            collection_rate=percentage(total_repaid, total_debts),
            customer_ledger_balance=self._cached_total(EntityType.CUSTOMER),
            supplier_ledger_balance=self._cached_total(EntityType.SUPPLIER),
        )

    def debt_by_customer(
        self,
        as_of: date | datetime | None = None,
        status: DebtStatus | str | None = None,
        limit: int | None = 100
    ) -> list[CustomerDebtRow]:
        _check_limit(limit)
        status = _coerce(DebtStatus, status)
        as_of = self._as_of(as_of)
        customers = {p.id: p for p in self.entity_repo.list_parties(EntityType.CUSTOMER)}

        groups: dict[int, list] = {}
        for debt in self.debt_repo.list_debts(open_only=True):
            if debt.customer_id is not None and not debt.is_paid:
                groups.setdefault(debt.customer_id, []).append(debt)

        rows = []
        for customer_id in sorted(groups):
            group = groups[customer_id]
            customer = customers.get(customer_id)
            days_overdue = max(0, max(d.days_overdue(as_of) for d in group))
            rows.append(CustomerDebtRow(
                customer_id=customer_id,
                customer_name=customer.name if customer else f"#{customer_id}",
                customer_phone=customer.phone if customer else None,
                total_debt=_total(d.amount for d in group),
                paid_amount=_total(d.paid_amount for d in group),
                remaining_amount=_total(d.remaining_amount for d in group),
                debt_count=len(group),
                last_debt_date=max(d.debt_date for d in group),
                days_overdue=days_overdue,
                status=classify_debt(days_overdue),
            ))

        if status is not None:
            rows = [r for r in rows if r.status is status]
        return top_n(rows, lambda r: r.remaining_amount, limit)

    def debt_aging(self, as_of: date | datetime | None = None) -> DebtAging:
        as_of = self._as_of(as_of)
        open_debts = sorted(
            (d for d in self.debt_repo.list_debts(open_only=True) if not d.is_paid),
            key=lambda d: d.id
        )

        by_status: dict[DebtStatus, list] = {s: [] for s in DebtStatus}
        for debt in open_debts:
            by_status[classify_debt(debt.days_overdue(as_of))].append(debt)

        by_age: list[list] = [[] for _ in AGE_RANGES]
        for debt in open_debts:
            age = max(0, debt.age_days(as_of))
            for index, (_, max_days) in enumerate(AGE_RANGES):
                if max_days is None or age <= max_days:
                    by_age[index].append(debt)
                    break

        def customers_in(group) -> int:
            return len({d.customer_id for d in group if d.customer_id is not None})

        return DebtAging(
            as_of=as_of,
            total_amount=_total(d.remaining_amount for d in open_debts),
            by_status=[
                DebtStatusBucket(
                    status=status,
                    total_amount=_total(d.remaining_amount for d in group),
                    debt_count=len(group),
                    customer_count=customers_in(group),
                )
                for status, group in by_status.items()
            ],
            by_age=[
                DebtAgeBucket(
                    age_range=f"{min_days}+" if max_days is None else f"{min_days}-{max_days}",
                    min_days=min_days,
                    max_days=max_days,
                    total_amount=_total(d.remaining_amount for d in group),
                    debt_count=len(group),
                    customer_count=customers_in(group),
                )
                for (min_days, max_days), group in zip(AGE_RANGES, by_age)
            ],
        )

    def payment_history(
        self,
        report_filter: ReportFilter,
        customer_id: int | None = None,
        limit: int | None = 100
    ) -> list[PaymentRow]:
        """Customer payments recorded in the ledger, newest first."""
        _check_limit(limit)
        entries = self.ledger_repo.list_entries_in_range(
            report_filter.start_date,
            report_filter.end_date,
            EntityScope(EntityType.CUSTOMER, customer_id),
        )
        payments = sorted(
            (e for e in entries if e.kind is EntryKind.PAYMENT),
            key=lambda e: (e.occurred_at, e.id),
            reverse=True
        )
        if limit is not None:
            payments = payments[:limit]

        customers = {p.id: p for p in self.entity_repo.list_parties(EntityType.CUSTOMER)}
        return [
            PaymentRow(
                entry_id=entry.id,
                customer_id=entry.entity_id,
                customer_name=customers[entry.entity_id].name
                if entry.entity_id in customers else f"#{entry.entity_id}",
                amount=-entry.amount,
                occurred_at=entry.occurred_at,
                related_invoice_id=entry.related_invoice_id,
                description=entry.description,
            )
            for entry in payments
        ]

    def supplier_balances(self, limit: int | None = None) -> list[SupplierBalanceRow]:
        """Cached supplier balances (what the shop owes), largest first."""
        _check_limit(limit)
        snapshots = {
            s.entity_id: s for s in self.snapshot_repo.list_snapshots(EntityType.SUPPLIER)
        }
        total = _total(s.balance for s in snapshots.values())

        rows = []
        for supplier in sorted(self.entity_repo.list_parties(EntityType.SUPPLIER), key=lambda p: p.id):
            snapshot = snapshots.get(supplier.id)
            balance = snapshot.balance if snapshot else ZERO
            rows.append(SupplierBalanceRow(
                supplier_id=supplier.id,
                supplier_name=supplier.name,
                balance=balance,
                last_recalculated_at=snapshot.last_recalculated_at if snapshot else None,
                percentage=percentage(balance, total),
            ))
        return top_n(rows, lambda r: r.balance, limit)

    # --- cash flow ----------------------------------------------------------

    def cashflow_summary(self, report_filter: ReportFilter) -> CashFlowSummary:
        scope = self._cash_scope(report_filter.entity_scope)
        opening = self._ledger_balance_before(report_filter.start_date, scope)
        entries = self._cash_entries(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        inflows = _inflows(entries)
        outflows = _outflows(entries)
        total_in = _total(e.amount for e in inflows)
        total_out = -_total(e.amount for e in outflows)

        return CashFlowSummary(
            period=report_filter.date_range,
            opening_balance=opening,
            total_inflows=total_in,
            total_outflows=total_out,
            net_cash_flow=total_in - total_out,
            closing_balance=opening + total_in - total_out,
            inflow_count=len(inflows),
            outflow_count=len(outflows),
        )

    def cashflow_trend(self, report_filter: ReportFilter) -> list[CashFlowTrendPoint]:
        scope = self._cash_scope(report_filter.entity_scope)
        balance = self._ledger_balance_before(report_filter.start_date, scope)
        entries = self._cash_entries(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )

        buckets: dict[str, list[LedgerEntry]] = {}
        for entry in entries:
            buckets.setdefault(bucket_key(entry.occurred_at, report_filter.period), []).append(entry)

        points = []
        for key in sorted(buckets):
            inflows = _inflows(buckets[key])
            outflows = _outflows(buckets[key])
            total_in = _total(e.amount for e in inflows)
            total_out = -_total(e.amount for e in outflows)
            balance += total_in - total_out
            points.append(CashFlowTrendPoint(
                period=key,
                inflows=total_in,
                outflows=total_out,
                net_flow=total_in - total_out,
                balance=balance,
                inflow_count=len(inflows),
                outflow_count=len(outflows),
            ))
        return points

    def cashflow_by_category(self, report_filter: ReportFilter) -> list[CashCategoryRow]:
        entries = self._cash_entries(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )

        rows: list[CashCategoryRow] = []
        for direction in (CashDirection.INFLOW, CashDirection.OUTFLOW):
            groups: dict[str, list[LedgerEntry]] = {}
            for entry in entries:
                if _direction(entry) is direction:
                    groups.setdefault(entry.category_label, []).append(entry)

            amounts = {label: abs(_total(e.amount for e in group)) for label, group in groups.items()}
            direction_total = _total(amounts.values())
            direction_rows = [
                CashCategoryRow(
                    category=label,
                    direction=direction,
                    amount=amounts[label],
                    transaction_count=len(group),
                    percentage=percentage(amounts[label], direction_total),
                )
                for label, group in groups.items()
            ]
            rows.extend(top_n(direction_rows, lambda r: r.amount, None))
        return rows

    def cash_movements(
        self,
        report_filter: ReportFilter,
        direction: CashDirection | str | None = None,
        category: str | None = None,
        limit: int | None = 100
    ) -> list[CashMovementRow]:
        _check_limit(limit)
        direction = _coerce(CashDirection, direction)
        entries = self._cash_entries(
            report_filter.start_date, report_filter.end_date, report_filter.entity_scope
        )
        if direction is not None:
            entries = [e for e in entries if _direction(e) is direction]
        if category:
            entries = [e for e in entries if e.category_label == category]

        entries = sorted(entries, key=lambda e: (e.occurred_at, e.id), reverse=True)
        if limit is not None:
            entries = entries[:limit]

        return [
            CashMovementRow(
                entry_id=e.id,
                cash_account_id=e.entity_id,
                occurred_at=e.occurred_at,
                direction=_direction(e),
                kind=e.kind.value,
                category=e.category_label,
                amount=abs(e.amount),
                description=e.description,
                related_invoice_id=e.related_invoice_id,
            )
            for e in entries
        ]

    def balance_by_account(self) -> list[CashAccountBalanceRow]:
        snapshots = {
            s.entity_id: s for s in self.snapshot_repo.list_snapshots(EntityType.CASH_ACCOUNT)
        }
        total = _total(s.balance for s in snapshots.values())

        rows = []
        for account in sorted(self.entity_repo.list_parties(EntityType.CASH_ACCOUNT), key=lambda p: p.id):
            snapshot = snapshots.get(account.id)
            balance = snapshot.balance if snapshot else ZERO
            rows.append(CashAccountBalanceRow(
                account_id=account.id,
                account_name=account.name,
                balance=balance,
                last_recalculated_at=snapshot.last_recalculated_at if snapshot else None,
                transaction_count=len(self.ledger_repo.list_entries(EntityType.CASH_ACCOUNT, account.id)),
                percentage=percentage(balance, total),
            ))
        return rows

    def daily_cash_summary(self, day: date | None = None) -> DailyCashSummary:
        day = self._as_of(day)
        start, end = start_of_day(day), end_of_day(day)
        scope = EntityScope(EntityType.CASH_ACCOUNT)
        entries = self._cash_entries(start, end)
        inflows = _inflows(entries)
        outflows = _outflows(entries)
        total_in = _total(e.amount for e in inflows)
        total_out = -_total(e.amount for e in outflows)

        return DailyCashSummary(
            day=day,
            total_inflows=total_in,
            total_outflows=total_out,
            net_flow=total_in - total_out,
            inflow_count=len(inflows),
            outflow_count=len(outflows),
            closing_balance=self._ledger_balance_before(start, scope) + total_in - total_out,
        )

    def cash_forecast(self, days: int = 30, reference: datetime | None = None) -> CashForecast:
        """
        Project the cash balance forward using the average daily flow of the
        last FORECAST_WINDOW_DAYS days.
        """
        if not 1 <= days <= MAX_FORECAST_DAYS:
            raise InvalidArgumentError(f"days must be between 1 and {MAX_FORECAST_DAYS}")

        now = reference if reference is not None else self.clock()
        scope = EntityScope(EntityType.CASH_ACCOUNT)
        window = self._cash_entries(now - timedelta(days=FORECAST_WINDOW_DAYS), now)
        window_days = Decimal(FORECAST_WINDOW_DAYS)
        daily_in = _total(e.amount for e in _inflows(window)) / window_days
        daily_out = -_total(e.amount for e in _outflows(window)) / window_days
        daily_net = daily_in - daily_out
        current = self._ledger_balance_before(now + ONE_MICROSECOND, scope)

        points = []
        for offset in range(1, days + 1):
            points.append(ForecastPoint(
                day=now.date() + timedelta(days=offset),
                projected_inflow=daily_in.quantize(CENT, rounding=ROUND_HALF_UP),
                projected_outflow=daily_out.quantize(CENT, rounding=ROUND_HALF_UP),
                projected_balance=(current + daily_net * offset).quantize(CENT, rounding=ROUND_HALF_UP),
            ))

        return CashForecast(
            current_balance=current,
            average_daily_inflow=daily_in.quantize(CENT, rounding=ROUND_HALF_UP),
            average_daily_outflow=daily_out.quantize(CENT, rounding=ROUND_HALF_UP),
            average_daily_net_flow=daily_net.quantize(CENT, rounding=ROUND_HALF_UP),
            points=points,
        )

    # --- inventory ----------------------------------------------------------

    def inventory_summary(self) -> InventorySummary:
        items = self.inventory_repo.list_items(active_only=True)
        statuses = [self._stock_status(item) for item in items]
        total_value = _total(item.stock_value for item in items)

        return InventorySummary(
            total_items=len(items),
            total_value=total_value,
            total_quantity=_total(item.quantity for item in items),
            in_stock_items=statuses.count(StockStatus.IN_STOCK),
            low_stock_items=statuses.count(StockStatus.LOW_STOCK),
            out_of_stock_items=statuses.count(StockStatus.OUT_OF_STOCK),
            average_item_value=average(total_value, len(items)),
            categories_count=len({item.category for item in items if item.category}),
        )

    def inventory_details(
        self,
        status: StockStatus | str | None = None,
        search: str | None = None,
        limit: int | None = 100
    ) -> list[InventoryItemRow]:
        _check_limit(limit)
        status = _coerce(StockStatus, status)
        items = sorted(self.inventory_repo.list_items(active_only=False), key=lambda i: i.id)
        if search:
            needle = search.casefold()
            items = [item for item in items if needle in item.name.casefold()]

        rows = [
            InventoryItemRow(
                item_id=item.id,
                item_name=item.name,
                unit=item.unit,
                category=item.category,
                quantity=item.quantity,
                unit_cost=item.unit_cost or ZERO,
                total_value=item.stock_value,
                reorder_level=self._reorder_level(item),
                status=self._stock_status(item),
                last_updated=item.updated_at,
            )
            for item in items
        ]
        if status is not None:
            rows = [r for r in rows if r.status is status]
        if limit is not None:
            rows = rows[:limit]
        return rows

    def inventory_movements(
        self,
        report_filter: ReportFilter,
        movement_type: MovementType | str | None = None,
        item_id: int | None = None,
        limit: int | None = 100
    ) -> list[InventoryMovementRow]:
        _check_limit(limit)
        movement_type = _coerce(MovementType, movement_type)
        movements = self.inventory_repo.list_movements(report_filter.start_date, report_filter.end_date)
        if movement_type is not None:
            movements = [m for m in movements if m.movement_type is movement_type]
        if item_id is not None:
            movements = [m for m in movements if m.item_id == item_id]

        movements = sorted(movements, key=lambda m: (m.occurred_at, m.id), reverse=True)
        if limit is not None:
            movements = movements[:limit]

        return [
            InventoryMovementRow(
                movement_id=m.id,
                occurred_at=m.occurred_at,
                item_id=m.item_id,
                item_name=m.item_name,
                movement_type=m.movement_type,
                quantity=m.quantity,
                unit_cost=m.unit_cost or ZERO,
                total_cost=m.value,
                notes=m.notes,
            )
            for m in movements
        ]

    def inventory_valuation(self) -> list[ValuationRow]:
        items = sorted(self.inventory_repo.list_items(active_only=True), key=lambda i: i.id)
        groups: dict[str, list[InventoryItem]] = {}
        for item in items:
            groups.setdefault(item.category or UNCATEGORIZED, []).append(item)

        total_value = _total(item.stock_value for item in items)
        rows = []
        for category in sorted(groups):
            group = groups[category]
            quantity = _total(item.quantity for item in group)
            value = _total(item.stock_value for item in group)
            rows.append(ValuationRow(
                category=category,
                item_count=len(group),
                total_quantity=quantity,
                total_value=value,
                average_cost=(value / quantity).quantize(CENT, rounding=ROUND_HALF_UP)
                if quantity > 0 else ZERO,
                percentage=percentage(value, total_value),
            ))
        return top_n(rows, lambda r: r.total_value, None)

    def low_stock(self) -> list[LowStockRow]:
        items = sorted(self.inventory_repo.list_items(active_only=True), key=lambda i: i.id)
        rows = []
        for item in items:
            status = self._stock_status(item)
            if status is StockStatus.IN_STOCK:
                continue
            reorder_level = self._reorder_level(item)
            rows.append(LowStockRow(
                item_id=item.id,
                item_name=item.name,
                unit=item.unit,
                quantity=item.quantity,
                reorder_level=reorder_level,
                unit_cost=item.unit_cost or ZERO,
                status=status,
                shortage=max(ZERO, reorder_level - item.quantity),
            ))
        return sorted(rows, key=lambda r: r.quantity)

    def inventory_movement_summary(self, report_filter: ReportFilter) -> InventoryMovementSummary:
        movements = self.inventory_repo.list_movements(report_filter.start_date, report_filter.end_date)
        totals = []
        for movement_type in MovementType:
            group = [m for m in movements if m.movement_type is movement_type]
            totals.append(MovementTypeTotals(
                movement_type=movement_type,
                count=len(group),
                quantity=_total(m.quantity for m in group),
                value=_total(m.value for m in group),
            ))
        by_type = {t.movement_type: t for t in totals}
        total_in = by_type[MovementType.IN]
        total_out = by_type[MovementType.OUT]

        return InventoryMovementSummary(
            period=report_filter.date_range,
            total_in=total_in.quantity,
            total_out=total_out.quantity,
            total_in_value=total_in.value,
            total_out_value=total_out.value,
            # adjustments carry a signed quantity
            net_change=total_in.quantity - total_out.quantity + by_type[MovementType.ADJUSTMENT].quantity,
            movement_count=len(movements),
            by_type=totals,
        )

    # --- financial statements -----------------------------------------------

    def _revenue(self, start: datetime, end: datetime) -> Decimal:
        return _total(i.total for i in self._invoices(start, end))

    def _cost_of_goods(self, start: datetime, end: datetime) -> Decimal:
        return _total(line.total_cost for line in self._lines(start, end))

    def _operating_expenses(self, start: datetime, end: datetime) -> Decimal:
        return _total(e.amount for e in self._expenses(start, end))

    def financial_summary(self, report_filter: ReportFilter) -> FinancialSummary:
        start, end = report_filter.start_date, report_filter.end_date
        revenue = self._revenue(start, end)
        cost = self._cost_of_goods(start, end)
        expenses = self._operating_expenses(start, end)
        net_profit = revenue - cost - expenses
        previous = previous_range(report_filter.date_range)
        previous_revenue = self._revenue(previous.start, previous.end)

        return FinancialSummary(
            period=report_filter.date_range,
            total_revenue=revenue,
            cost_of_goods_sold=cost,
            total_expenses=expenses,
            net_profit=net_profit,
            profit_margin=percentage(net_profit, revenue),
            total_receivables=self._cached_total(EntityType.CUSTOMER),
            total_payables=self._cached_total(EntityType.SUPPLIER),
            total_cash=self._cached_total(EntityType.CASH_ACCOUNT),
            previous_revenue=previous_revenue,
            revenue_growth=growth(revenue, previous_revenue),
        )

    def _revenue_and_expenses_by_period(
        self,
        report_filter: ReportFilter
    ) -> tuple[list[str], dict[str, list[Invoice]], dict[str, list[Expense]]]:
        invoices: dict[str, list[Invoice]] = {}
        for invoice in self._invoices(report_filter.start_date, report_filter.end_date):
            invoices.setdefault(bucket_key(invoice.invoice_date, report_filter.period), []).append(invoice)
        expenses: dict[str, list[Expense]] = {}
        for expense in self._expenses(report_filter.start_date, report_filter.end_date):
            expenses.setdefault(bucket_key(expense.expense_date, report_filter.period), []).append(expense)
        return sorted(invoices.keys() | expenses.keys()), invoices, expenses

    def revenue_by_period(self, report_filter: ReportFilter) -> list[RevenuePeriodRow]:
        keys, invoices, expenses = self._revenue_and_expenses_by_period(report_filter)
        rows = []
        for key in keys:
            revenue = _total(i.total for i in invoices.get(key, []))
            spent = _total(e.amount for e in expenses.get(key, []))
            rows.append(RevenuePeriodRow(
                period=key,
                revenue=revenue,
                expenses=spent,
                profit=revenue - spent,
                invoice_count=len(invoices.get(key, [])),
            ))
        return rows

    def profit_trend(self, report_filter: ReportFilter) -> list[ProfitTrendPoint]:
        return [
            ProfitTrendPoint(
                period=row.period,
                revenue=row.revenue,
                expenses=row.expenses,
                profit=row.profit,
                margin=percentage(row.profit, row.revenue),
            )
            for row in self.revenue_by_period(report_filter)
        ]

    def expense_breakdown(self, report_filter: ReportFilter) -> list[ExpenseCategoryRow]:
        expenses = self._expenses(report_filter.start_date, report_filter.end_date)
        groups: dict[str, list[Expense]] = {}
        for expense in expenses:
            groups.setdefault(expense.category or UNCATEGORIZED, []).append(expense)

        total = _total(e.amount for e in expenses)
        rows = []
        for category, group in groups.items():
            amount = _total(e.amount for e in group)
            rows.append(ExpenseCategoryRow(
                category=category,
                amount=amount,
                count=len(group),
                percentage=percentage(amount, total),
            ))
        return top_n(rows, lambda r: r.amount, None)

    def profit_loss(self, report_filter: ReportFilter) -> ProfitLoss:
        start, end = report_filter.start_date, report_filter.end_date
        revenue = self._revenue(start, end)
        cost = self._cost_of_goods(start, end)
        gross = revenue - cost
        expenses = self._operating_expenses(start, end)
        net = gross - expenses

        previous = previous_range(report_filter.date_range)
        previous_net = (
            self._revenue(previous.start, previous.end)
            - self._cost_of_goods(previous.start, previous.end)
            - self._operating_expenses(previous.start, previous.end)
        )

        return ProfitLoss(
            period=report_filter.date_range,
            total_revenue=revenue,
            cost_of_goods_sold=cost,
            gross_profit=gross,
            gross_margin=percentage(gross, revenue),
            operating_expenses=expenses,
            net_profit=net,
            net_margin=percentage(net, revenue),
            previous_net_profit=previous_net,
            profit_growth=growth(net, previous_net),
        )

    def income_statement(self, report_filter: ReportFilter) -> IncomeStatement:
        start, end = report_filter.start_date, report_filter.end_date
        revenue = self._revenue(start, end)
        cost = self._cost_of_goods(start, end)
        expenses = self._operating_expenses(start, end)
        operating_income = revenue - cost - expenses

        return IncomeStatement(
            period=report_filter.date_range,
            revenue=revenue,
            cost_of_sales=cost,
            gross_profit=revenue - cost,
            operating_expenses=expenses,
            operating_income=operating_income,
            net_income=operating_income,
        )

    def balance_sheet(self, as_of: datetime | None = None) -> BalanceSheet:
        """Ledger-derived positions at as_of; inventory is valued at current stock."""
        as_of = as_of if as_of is not None else self.clock()
        cutoff = as_of + ONE_MICROSECOND
        cash = self._ledger_balance_before(cutoff, EntityScope(EntityType.CASH_ACCOUNT))
        receivables = self._ledger_balance_before(cutoff, EntityScope(EntityType.CUSTOMER))
        payables = self._ledger_balance_before(cutoff, EntityScope(EntityType.SUPPLIER))
        inventory = _total(item.stock_value for item in self.inventory_repo.list_items(active_only=True))
        current_assets = cash + receivables + inventory

        return BalanceSheet(
            as_of=as_of,
            cash=cash,
            receivables=receivables,
            inventory=inventory,
            total_current_assets=current_assets,
            fixed_assets=ZERO,
            total_assets=current_assets,
            payables=payables,
            total_liabilities=payables,
            equity=current_assets - payables,
        )

    # --- dashboard ----------------------------------------------------------

    def dashboard(self, reference: datetime | None = None) -> DashboardSummary:
        now = reference if reference is not None else self.clock()
        today = resolve(PeriodPreset.TODAY, now)
        month = resolve(PeriodPreset.THIS_MONTH, now)

        today_invoices = self._invoices(today.start, today.end)
        today_sales = _total(i.total for i in today_invoices)
        today_expenses = self._operating_expenses(today.start, today.end)
        month_invoices = self._invoices(month.start, month.end)
        month_sales = _total(i.total for i in month_invoices)
        month_expenses = self._operating_expenses(month.start, month.end)
        items = self.inventory_repo.list_items(active_only=True)

        return DashboardSummary(
            today_sales=today_sales,
            today_payments_received=_total(i.paid_amount for i in today_invoices),
            today_expenses=today_expenses,
            today_profit=today_sales - today_expenses,
            month_sales=month_sales,
            month_expenses=month_expenses,
            month_profit=month_sales - self._cost_of_goods(month.start, month.end) - month_expenses,
            month_invoices=len(month_invoices),
            cash_total=self._cached_total(EntityType.CASH_ACCOUNT),
            customers_debt=self._cached_total(EntityType.CUSTOMER),
            suppliers_debt=self._cached_total(EntityType.SUPPLIER),
            low_stock_items=sum(
                1 for item in items if self._stock_status(item) is not StockStatus.IN_STOCK
            ),
        )
