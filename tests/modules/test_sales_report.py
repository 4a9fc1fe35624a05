"""Sales by date range (backoffice_modules/reporting/service.py)."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from backoffice_kernel.exceptions import InvalidDateError
from backoffice_kernel.models.sale import Sale, SaleItem
from backoffice_modules.reporting.service import SalesReportService


@pytest.fixture
def record_sale(seed, create_product, customer_id):
    product = create_product(name="Coffee 250g", sku="COF-250")

    def _record(number: str, sold_at: datetime, total: str, customer: bool = True) -> None:
        seed(Sale(
            number=number,
            customer_id=customer_id if customer else None,
            total=Decimal(total),
            sold_at=sold_at,
            items=[SaleItem(product_id=product, quantity=1, unit_price=Decimal(total))],
        ))

    return _record


@pytest.fixture
def report(session):
    return SalesReportService(session)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestSalesByDateRange:

    def test_inclusive_range(self, report, record_sale):
        record_sale("S-1", _utc(2025, 4, 30, 23, 59, 59), "1.00")
        record_sale("S-2", _utc(2025, 5, 1, 0, 0, 0), "2.50")
        record_sale("S-3", _utc(2025, 5, 31, 23, 59, 59), "4.00", customer=False)
        record_sale("S-4", _utc(2025, 6, 1, 0, 0, 0), "8.00")

        result = report.sales_by_date_range("2025-05-01", "2025-05-31")

        assert [s.number for s in result.sales] == ["S-2", "S-3"]
        assert result.count == 2
        assert result.total == Decimal("6.50")

    def test_single_day(self, report, record_sale):
        record_sale("S-1", _utc(2025, 5, 1, 12, 0), "3.00")

        result = report.sales_by_date_range(date(2025, 5, 1), date(2025, 5, 1))

        assert result.count == 1
        assert result.start_date.startswith("2025-05-01T00:00:00")
        assert result.end_date.startswith("2025-05-01T23:59:59.999999")

    def test_ordered_oldest_first(self, report, record_sale):
        record_sale("S-2", _utc(2025, 5, 2, 9), "1.00")
        record_sale("S-1", _utc(2025, 5, 1, 9), "1.00")

        result = report.sales_by_date_range("2025-05-01", "2025-05-02")

        assert [s.number for s in result.sales] == ["S-1", "S-2"]

    def test_sale_details(self, report, record_sale, customer_id):
        record_sale("S-1", _utc(2025, 5, 1, 9), "3.00")

        sale = report.sales_by_date_range("2025-05-01", "2025-05-01").sales[0]

        assert sale.customer.id == customer_id
        assert sale.items[0].sku == "COF-250"
        assert sale.items[0].product_name == "Coffee 250g"

    def test_empty_range(self, report):
        result = report.sales_by_date_range("2025-05-01", "2025-05-31")
        assert result.sales == ()
        assert result.total == Decimal("0.00")

    def test_end_before_start(self, report):
        with pytest.raises(InvalidDateError) as exc_info:
            report.sales_by_date_range("2025-05-31", "2025-05-01")
        assert exc_info.value.reason == "end before start"

    def test_malformed_date(self, report):
        with pytest.raises(InvalidDateError) as exc_info:
            report.sales_by_date_range("yesterday", "2025-05-01")
        assert exc_info.value.field == "start_date"

    def test_logged(self, report, captured_logs):
        report.sales_by_date_range("2025-05-01", "2025-05-31")
        records = [r for r in captured_logs() if r["message"] == "sales_report_generated"]
        assert records[0]["count"] == 0
