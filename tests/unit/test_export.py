"""
Unit tests - Flattening report datasets and CSV export.
"""

import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest

from app.domain.aggregates import CustomerSalesRow, DebtAgeBucket, DebtAging, SalesSummary
from app.domain.errors import InvalidArgumentError
from app.domain.export import EXPORTABLE_REPORTS, ReportTable, build_report_table, to_table
from app.domain.value_objects import DateRange
from app.infrastructure.export import CSVExportAdapter, get_export_adapter


def read_csv(payload: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(payload.decode("utf-8"))))


class TestToTable:

    def test_period_is_split_into_two_columns(self):
        summary = SalesSummary(
            period=DateRange(datetime(2024, 3, 1), datetime(2024, 3, 31, 23, 59)),
            total_sales=Decimal("180"),
            sales_growth=Decimal("50"),
        )
        table = to_table("sales_summary", summary, SalesSummary)

        assert table.columns[:3] == ["period_start", "period_end", "total_sales"]
        assert table.rows[0][:3] == ["2024-03-01T00:00:00", "2024-03-31T23:59:00", Decimal("180")]

    def test_percentages_rounded_to_two_places(self):
        row = CustomerSalesRow(
            customer_id=None,
            customer_name="Walk-in customer",
            customer_phone=None,
            total_purchases=Decimal("100"),
            total_paid=Decimal("60"),
            total_debt=Decimal("40"),
            invoice_count=1,
            last_purchase_date=datetime(2024, 3, 2, 10),
            average_order_value=Decimal("100.00"),
            percentage=Decimal("100") / Decimal("180") * 100,
        )
        table = to_table("sales_by_customer", [row], CustomerSalesRow)
        values = dict(zip(table.columns, table.rows[0]))

        assert values["percentage"] == Decimal("55.56")
        assert values["total_purchases"] == Decimal("100")
        assert values["customer_id"] is None

    def test_nested_lists_are_left_out(self):
        aging = DebtAging(as_of=date(2024, 3, 15), by_age=[DebtAgeBucket("0-30", 0, 30)])
        table = to_table("debt_aging", aging, DebtAging)
        assert table.columns == ["as_of", "total_amount"]
        assert table.rows == [["2024-03-15", Decimal("0")]]

    def test_rejects_non_dataclass_row_type(self):
        with pytest.raises(InvalidArgumentError):
            to_table("broken", [], dict)


class TestBuildReportTable:

    def test_unknown_report_type(self, reports, march):
        with pytest.raises(InvalidArgumentError):
            build_report_table(reports, "payroll", march)

    def test_debt_aging_exports_all_age_buckets(self, reports, march):
        table = build_report_table(reports, "debt_aging", march)
        assert [row[0] for row in table.rows] == ["0-30", "31-60", "61-90", "91-180", "181-365", "366+"]

    @pytest.mark.parametrize("report_type", sorted(EXPORTABLE_REPORTS))
    def test_every_report_builds_on_empty_data(self, reports, march, report_type):
        table = build_report_table(reports, report_type, march)
        assert table.title == report_type
        assert all(len(row) == len(table.columns) for row in table.rows)


class TestCSVExport:

    def test_header_and_rows(self):
        table = ReportTable(
            title="expense_breakdown",
            columns=["category", "amount", "note"],
            rows=[["Rent", Decimal("200.00"), None], ["Ink, toner", Decimal("50"), "bulk"]],
        )
        rows = read_csv(CSVExportAdapter().export(table))

        assert rows == [
            ["category", "amount", "note"],
            ["Rent", "200.00", ""],
            ["Ink, toner", "50", "bulk"],
        ]

    def test_adapter_lookup(self):
        assert get_export_adapter("CSV").media_type == "text/csv"

    def test_unknown_format(self):
        with pytest.raises(InvalidArgumentError):
            get_export_adapter("xlsx")
