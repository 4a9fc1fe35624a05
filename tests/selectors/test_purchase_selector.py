"""
Purchase listing: search, typed filters, sort and paging
(backoffice_kernel/selectors/purchase_selector.py).
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from backoffice_kernel.domain.dtos import ListQuery, Pagination, PurchaseInput, PurchaseItemInput
from backoffice_kernel.exceptions import PurchaseNotFoundError
from backoffice_kernel.selectors.purchase_selector import PurchaseSelector


@pytest.fixture
def purchases(coordinator, create_product, acting_user_id, deterministic_clock):
    """
    Three purchases on consecutive days:

        PUR-000001  2025-03-01  total  2.00
        PUR-000002  2025-03-02  total 10.00
        PUR-000003  2025-03-03  total 30.00
    """
    product = create_product(cost="1.00")
    deterministic_clock.set_time(datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc))
    created = []
    for quantity, unit_cost in ((1, "2.00"), (5, "2.00"), (10, "3.00")):
        created.append(coordinator.create(
            PurchaseInput(items=(PurchaseItemInput(product, quantity, unit_cost),)),
            acting_user_id,
        ))
        deterministic_clock.advance(24 * 3600)
    return created


def _numbers(page) -> list[str]:
    return [p.number for p in page.purchases]


class TestGetById:

    def test_found(self, session, purchases):
        view = PurchaseSelector(session).get_by_id(purchases[0].id)
        assert view.number == purchases[0].number
        assert view.total == purchases[0].total
        assert view.quantity_by_product() == purchases[0].quantity_by_product()
        session.rollback()

    def test_missing(self, session):
        with pytest.raises(PurchaseNotFoundError):
            PurchaseSelector(session).get_by_id(uuid4())


class TestListing:

    def test_default_order_newest_first(self, coordinator, purchases):
        page = coordinator.find()
        assert _numbers(page) == ["PUR-000003", "PUR-000002", "PUR-000001"]
        assert page.total == 3

    def test_paging_keeps_total(self, coordinator, purchases):
        page = coordinator.find(ListQuery(pagination=Pagination(limit=1, offset=1)))
        assert _numbers(page) == ["PUR-000002"]
        assert page.total == 3

    def test_search_on_number(self, coordinator, purchases):
        page = coordinator.find({"search": "0002"})
        assert _numbers(page) == ["PUR-000002"]
        assert page.total == 1

    def test_sort_by_total_ascending(self, coordinator, purchases):
        page = coordinator.find({"sortColumn": "total", "sortDirection": "asc"})
        assert [p.total for p in page.purchases] == [Decimal("2.00"), Decimal("10.00"), Decimal("30.00")]

    def test_unknown_sort_column_falls_back(self, coordinator, purchases, captured_logs):
        page = coordinator.find({"sortColumn": "colour"})
        assert _numbers(page) == ["PUR-000003", "PUR-000002", "PUR-000001"]
        assert any(r["message"] == "sort_column_rejected" for r in captured_logs())


class TestFilters:

    @pytest.mark.parametrize("operator, value, expected", [
        ("gte", "10", ["PUR-000003", "PUR-000002"]),
        ("lt", "10", ["PUR-000001"]),
        ("eq", "30", ["PUR-000003"]),
        ("between", "1,10", ["PUR-000002", "PUR-000001"]),
    ])
    def test_total(self, coordinator, purchases, operator, value, expected):
        page = coordinator.find({"filterField": "total", "filterType": operator, "filterValue": value})
        assert _numbers(page) == expected
        assert page.total == len(expected)

    def test_purchase_date(self, coordinator, purchases):
        page = coordinator.find({
            "filterField": "purchased_at", "filterType": "eq", "filterValue": "2025-03-02",
        })
        assert _numbers(page) == ["PUR-000002"]

    def test_purchase_date_range(self, coordinator, purchases):
        page = coordinator.find({
            "filterField": "purchased_at",
            "filterType": "between",
            "filterValue": "2025-03-02,2025-03-03",
        })
        assert page.total == 2

    def test_number_like(self, coordinator, purchases):
        page = coordinator.find({"filterField": "number", "filterType": "like", "filterValue": "000001"})
        assert _numbers(page) == ["PUR-000001"]

    @pytest.mark.parametrize("field, operator, value", [
        ("colour", "eq", "red"),
        ("total", "like", "10"),
        ("total", "gte", "lots"),
        ("total", "contains", "1"),
    ])
    def test_rejected_filter_lists_everything(self, coordinator, purchases, captured_logs, field, operator, value):
        page = coordinator.find({"filterField": field, "filterType": operator, "filterValue": value})

        assert page.total == 3
        rejected = [r for r in captured_logs() if r["message"] == "filter_rejected"]
        assert rejected[0]["listing"] == "purchases"
        assert rejected[0]["field"] == field
