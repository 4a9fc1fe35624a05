"""
StockLedger: signed, row-locked stock adjustments and commit-time
verification (backoffice_kernel/services/stock_ledger.py).
"""

from uuid import uuid4

import pytest
from sqlalchemy import update

from backoffice_kernel.db.types import BIGINT_MAX, BIGINT_MIN
from backoffice_kernel.exceptions import (
    InconsistentStockError,
    NegativeStockError,
    ProductNotFoundError,
    StockOutOfRangeError,
)
from backoffice_kernel.models.product import Product
from backoffice_kernel.services.stock_ledger import StockLedger


class TestAdjust:

    def test_positive_delta_increments(self, session, create_product, stock_of):
        pid = create_product(stock=10)
        ledger = StockLedger(session)

        assert ledger.adjust(pid, 5) == 15
        session.commit()

        assert stock_of(pid) == 15

    def test_negative_delta_decrements(self, session, create_product, stock_of):
        pid = create_product(stock=10)
        ledger = StockLedger(session)

        assert ledger.adjust(pid, -4) == 6
        session.commit()

        assert stock_of(pid) == 6

    def test_unknown_product(self, session):
        with pytest.raises(ProductNotFoundError):
            StockLedger(session).adjust(uuid4(), 1)

    def test_rollback_discards_adjustment(self, session, create_product, stock_of):
        pid = create_product(stock=10)
        StockLedger(session).adjust(pid, 7)
        session.rollback()

        assert stock_of(pid) == 10

    def test_cached_product_sees_new_stock(self, session, create_product):
        pid = create_product(stock=10)
        ledger = StockLedger(session)
        product = ledger.lock_for_update(pid)

        ledger.adjust(pid, 3)

        assert product.stock == 13
        session.rollback()

    def test_adjust_up_to_column_maximum(self, session, create_product, stock_of):
        pid = create_product(stock=BIGINT_MAX - 2)

        assert StockLedger(session).adjust(pid, 2) == BIGINT_MAX
        session.commit()

        assert stock_of(pid) == BIGINT_MAX

    def test_overflow_is_refused(self, session, create_product, stock_of):
        pid = create_product(stock=BIGINT_MAX - 2)

        with pytest.raises(StockOutOfRangeError) as exc_info:
            StockLedger(session).adjust(pid, 5)
        session.rollback()

        assert (exc_info.value.stock, exc_info.value.delta) == (BIGINT_MAX - 2, 5)
        assert stock_of(pid) == BIGINT_MAX - 2

    def test_underflow_is_refused(self, session, create_product, stock_of):
        pid = create_product(stock=BIGINT_MIN + 1)

        with pytest.raises(StockOutOfRangeError):
            StockLedger(session).adjust(pid, -2)
        session.rollback()

        assert stock_of(pid) == BIGINT_MIN + 1

    def test_delta_wider_than_column(self, session, create_product):
        pid = create_product(stock=0)

        with pytest.raises(StockOutOfRangeError):
            StockLedger(session).adjust(pid, BIGINT_MAX + 1)
        session.rollback()

    def test_logs_adjustment(self, session, create_product, captured_logs):
        pid = create_product(stock=1)
        StockLedger(session).adjust(pid, 2)
        session.rollback()

        records = [r for r in captured_logs() if r["message"] == "stock_adjusted"]
        assert records[-1]["product_id"] == str(pid)
        assert records[-1]["delta"] == 2
        assert records[-1]["stock"] == 3


class TestLockForUpdate:

    def test_returns_product(self, session, create_product):
        pid = create_product(stock=4)
        product = StockLedger(session).lock_for_update(pid)
        assert product.id == pid
        assert product.stock == 4
        session.rollback()

    def test_unknown_product(self, session):
        with pytest.raises(ProductNotFoundError):
            StockLedger(session).lock_for_update(uuid4())

    def test_relock_after_own_adjust_is_consistent(self, session, create_product):
        pid = create_product(stock=4)
        ledger = StockLedger(session)
        ledger.lock_for_update(pid)
        ledger.adjust(pid, 1)

        assert ledger.lock_for_update(pid).stock == 5
        session.rollback()


class TestNetDeltas:

    def test_aggregates_per_product(self, session, create_product):
        a = create_product(stock=10)
        b = create_product(stock=10)
        ledger = StockLedger(session)

        ledger.adjust(a, 3)
        ledger.adjust(a, 2)
        ledger.adjust(b, -1)

        assert ledger.net_deltas() == {a: 5, b: -1}
        session.rollback()

    def test_zero_net_effect_omitted(self, session, create_product):
        a = create_product(stock=10)
        ledger = StockLedger(session)

        ledger.adjust(a, 3)
        ledger.adjust(a, -3)

        assert ledger.net_deltas() == {}
        session.rollback()


class TestVerify:

    def test_passes_for_consistent_state(self, session, create_product):
        pid = create_product(stock=10)
        ledger = StockLedger(session)
        ledger.adjust(pid, 3)

        ledger.verify()
        session.rollback()

    def test_negative_stock_rejected(self, session, create_product):
        pid = create_product(stock=2)
        ledger = StockLedger(session)
        ledger.adjust(pid, -5)

        with pytest.raises(NegativeStockError) as exc_info:
            ledger.verify()
        assert exc_info.value.stock == -3
        session.rollback()

    def test_negative_stock_allowed_when_configured(self, session, create_product):
        pid = create_product(stock=2)
        ledger = StockLedger(session, allow_negative_stock=True)
        ledger.adjust(pid, -5)

        ledger.verify()
        session.rollback()

    def test_detects_stock_changed_outside_ledger(self, session, create_product):
        pid = create_product(stock=10)
        ledger = StockLedger(session)
        ledger.adjust(pid, 3)

        # A write that bypasses the ledger
        session.execute(
            update(Product)
            .where(Product.id == pid)
            .values(stock=Product.stock + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InconsistentStockError) as exc_info:
            ledger.verify()
        assert exc_info.value.expected == 13
        assert exc_info.value.actual == 14
        session.rollback()
