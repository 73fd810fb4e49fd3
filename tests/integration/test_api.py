"""
Integration tests - HTTP API over a temporary SQLite database.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.infrastructure.database import models

MARCH = {"start_date": "2024-03-01", "end_date": "2024-03-31"}


@pytest.fixture
def seeded(session_factory):
    with session_factory() as db:
        db.add(models.Customer(id=1, name="Acme Printing", phone="555-0101", created_at=datetime(2024, 1, 2)))
        for supplier_id in (1, 2, 3):
            db.add(models.Supplier(id=supplier_id, name=f"Supplier {supplier_id}"))
        db.add(models.CashAccount(id=1, name="Drawer"))
        db.add(models.Product(id=1, name="Flyers A5", category="Printing"))
        db.add(models.Invoice(
            id=1, customer_id=1, invoice_date=datetime(2024, 3, 1, 11),
            total=Decimal("100"), paid_amount=Decimal("40"), remaining_amount=Decimal("60"),
            total_cost=Decimal("30"),
        ))
        db.add(models.InvoiceItem(
            invoice_id=1, product_id=1, quantity=Decimal("2"), unit_price=Decimal("50"), total_cost=Decimal("30")
        ))
        db.add(models.Expense(category="Rent", amount=Decimal("30"), expense_date=datetime(2024, 3, 5)))
        db.add_all([
            models.LedgerEntry(entity_type="customer", entity_id=1, kind="sale",
                               amount=Decimal("100"), occurred_at=datetime(2024, 3, 1, 11), related_invoice_id=1),
            models.LedgerEntry(entity_type="customer", entity_id=1, kind="payment",
                               amount=Decimal("-40"), occurred_at=datetime(2024, 3, 2)),
            models.LedgerEntry(entity_type="customer", entity_id=1, kind="sale",
                               amount=Decimal("25"), occurred_at=datetime(2024, 3, 3)),
            models.LedgerEntry(entity_type="supplier", entity_id=1, kind="purchase",
                               amount=Decimal("70"), occurred_at=datetime(2024, 3, 4)),
            models.LedgerEntry(entity_type="supplier", entity_id=2, kind="bogus",
                               amount=Decimal("1"), occurred_at=datetime(2024, 3, 4)),
            models.LedgerEntry(entity_type="supplier", entity_id=3, kind="purchase",
                               amount=Decimal("12.50"), occurred_at=datetime(2024, 3, 6)),
            models.LedgerEntry(entity_type="cash_account", entity_id=1, kind="payment",
                               amount=Decimal("40"), occurred_at=datetime(2024, 3, 2)),
        ])
        db.add(models.InventoryItem(
            name="A4 Paper", category="Paper", quantity=Decimal("3"), reorder_level=Decimal("5"), unit_cost=Decimal("4")
        ))
        db.add(models.Debt(
            customer_id=1, debtor_name="Acme Printing", amount=Decimal("60"), remaining_amount=Decimal("60"),
            debt_date=date(2024, 3, 1), due_date=date(2024, 3, 10),
        ))
        db.commit()
    return session_factory


class TestBalances:

    def test_recalculate_one(self, client, seeded):
        response = client.post("/api/v1/balances/customer/1/recalculate")
        assert response.status_code == 200
        data = response.json()
        assert data["entity_type"] == "customer"
        assert Decimal(data["balance"]) == Decimal("85")
        assert data["last_recalculated_at"] is not None

    def test_get_balance_before_and_after_recalculation(self, client, seeded):
        before = client.get("/api/v1/balances/customer/1")
        assert before.status_code == 200
        assert before.json()["balance"] is None

        client.post("/api/v1/balances/customer/1/recalculate")
        after = client.get("/api/v1/balances/customer/1")
        assert Decimal(after.json()["balance"]) == Decimal("85")

    def test_unknown_entity(self, client, seeded):
        assert client.post("/api/v1/balances/customer/999/recalculate").status_code == 404
        assert client.get("/api/v1/balances/supplier/999").status_code == 404

    def test_unknown_entity_type(self, client, seeded):
        assert client.post("/api/v1/balances/employee/1/recalculate").status_code == 400

    def test_corrupt_ledger_row_is_storage_unavailable(self, client, seeded):
        response = client.post("/api/v1/balances/supplier/2/recalculate")
        assert response.status_code == 503
        assert response.json()["detail"] == "Storage unavailable"
        assert client.get("/api/v1/balances/supplier/2").json()["balance"] is None

    def test_batch_reports_partial_failure(self, client, seeded):
        response = client.post("/api/v1/balances/supplier/recalculate")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["succeeded"] == 2
        assert [f["entity_id"] for f in data["failed"]] == [2]
        assert data["failed"][0]["error_type"] == "StorageError"
        assert data["is_complete"] is False

        assert Decimal(client.get("/api/v1/balances/supplier/3").json()["balance"]) == Decimal("12.50")
        assert client.get("/api/v1/balances/supplier/2").json()["balance"] is None


class TestAccessControl:

    def test_missing_role_is_unauthorized(self, client, seeded):
        response = client.get("/api/v1/reports/sales/summary", headers={"X-User-Role": ""})
        assert response.status_code == 401

    def test_viewer_cannot_recalculate(self, client, seeded):
        response = client.post("/api/v1/balances/customer/1/recalculate", headers={"X-User-Role": "viewer"})
        assert response.status_code == 403

    def test_cashier_cannot_export(self, client, seeded):
        response = client.get("/api/v1/reports/export/sales_summary/csv", headers={"X-User-Role": "cashier"})
        assert response.status_code == 403

    def test_viewer_can_read_reports(self, client, seeded):
        response = client.get("/api/v1/reports/sales/summary", params=MARCH, headers={"X-User-Role": "viewer"})
        assert response.status_code == 200


class TestReports:

    def test_sales_summary(self, client, seeded):
        data = client.get("/api/v1/reports/sales/summary", params=MARCH).json()
        assert Decimal(data["total_sales"]) == Decimal("100")
        assert data["total_invoices"] == 1
        assert Decimal(data["pending_amount"]) == Decimal("60")
        assert data["period"]["start"] == "2024-03-01T00:00:00"

    def test_sales_by_customer(self, client, seeded):
        rows = client.get("/api/v1/reports/sales/by-customer", params=MARCH).json()
        assert [r["customer_name"] for r in rows] == ["Acme Printing"]
        assert Decimal(rows[0]["percentage"]) == Decimal("100")

    def test_top_products_unknown_ranking(self, client, seeded):
        response = client.get("/api/v1/reports/sales/top-products", params={**MARCH, "sort_by": "margin"})
        assert response.status_code == 400

    def test_inverted_window_rejected(self, client, seeded):
        response = client.get(
            "/api/v1/reports/sales/summary", params={"start_date": "2024-03-31", "end_date": "2024-03-01"}
        )
        assert response.status_code == 400

    def test_unknown_preset_and_period_rejected(self, client, seeded):
        assert client.get("/api/v1/reports/sales/trend", params={"preset": "nextMonth"}).status_code == 400
        assert client.get("/api/v1/reports/sales/trend", params={**MARCH, "period": "hourly"}).status_code == 400
        assert client.get("/api/v1/reports/periods/someday").status_code == 400

    def test_preset_range(self, client, seeded):
        data = client.get("/api/v1/reports/periods/thisMonth").json()
        assert data["preset"] == "thisMonth"
        assert data["start"] <= data["end"]

    def test_profit_loss(self, client, seeded):
        data = client.get("/api/v1/reports/financial/profit-loss", params=MARCH).json()
        assert Decimal(data["gross_profit"]) == Decimal("70")
        assert Decimal(data["net_profit"]) == Decimal("40")
        assert Decimal(str(data["net_margin"])) == Decimal("40.00")

    def test_cashflow_summary(self, client, seeded):
        data = client.get("/api/v1/reports/cashflow/summary", params=MARCH).json()
        assert Decimal(data["total_inflows"]) == Decimal("40")
        assert Decimal(data["closing_balance"]) == Decimal("40")

    def test_debt_aging(self, client, seeded):
        data = client.get("/api/v1/reports/debts/aging", params={"as_of": "2024-03-15"}).json()
        assert len(data["by_age"]) == 6
        assert Decimal(data["total_amount"]) == Decimal("60")

    def test_low_stock(self, client, seeded):
        rows = client.get("/api/v1/reports/inventory/low-stock").json()
        assert [(r["item_name"], r["status"]) for r in rows] == [("A4 Paper", "low_stock")]

    def test_dashboard(self, client, seeded):
        response = client.get("/api/v1/reports/dashboard")
        assert response.status_code == 200
        assert response.json()["low_stock_items"] == 1

    def test_balance_sheet_over_corrupt_ledger_row(self, client, seeded):
        response = client.get("/api/v1/reports/financial/balance-sheet")
        assert response.status_code == 503

    def test_supplier_balances_after_batch(self, client, seeded):
        client.post("/api/v1/balances/supplier/recalculate")
        rows = client.get("/api/v1/reports/suppliers/balances").json()
        assert [r["supplier_id"] for r in rows] == [1, 3, 2]


class TestExport:

    def test_csv_download(self, client, seeded):
        response = client.get("/api/v1/reports/export/sales_by_customer/csv", params=MARCH)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        header, row = response.text.strip().splitlines()
        assert header.startswith("customer_id,customer_name")
        assert row.startswith("1,Acme Printing")

    def test_unknown_format(self, client, seeded):
        assert client.get("/api/v1/reports/export/sales_summary/xlsx").status_code == 400

    def test_unknown_report(self, client, seeded):
        assert client.get("/api/v1/reports/export/payroll/csv").status_code == 400


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
