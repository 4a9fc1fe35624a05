"""
StockLedger -- transaction-scoped authority for product stock quantities.

Responsibility:
    Applies signed quantity deltas to a product's stock as part of a larger
    unit of work, takes row locks on products, and verifies before commit
    that every stock it touched equals what this transaction says it should.

Architecture position:
    Kernel > Services -- imperative shell.  One instance per transaction:
    the session passed to the constructor IS the transaction handle.
    Called by PurchaseCoordinator.

Invariants enforced:
    - Stock is mutated only by ``adjust``: a single atomic
      ``UPDATE products SET stock = stock + :delta`` statement.  Never a
      read-modify-write of the ORM attribute.
    - Deltas are signed integers; there are no separate increment and
      decrement primitives, so create, revert and reapply all use one call.
    - Commit-time verification (``verify``): for every product touched,
      ``stock == baseline + net_delta`` where the baseline is the stock this
      transaction first observed (under lock, or immediately after its first
      UPDATE, which also locks the row).  Optionally, stock >= 0.

Failure modes:
    - ProductNotFoundError: no product with that id is visible to the
      transaction (adjust / lock_for_update).
    - StockOutOfRangeError: adjust() would push stock past the BIGINT
      column range.  Nothing is written.
    - InconsistentStockError: verify() found a stock that does not match
      baseline + deltas.  Indicates a defect; the caller must roll back.
    - NegativeStockError: verify() found a negative stock while negatives
      are disallowed.
    - OperationalError (lock timeout / deadlock) propagates from the
      driver; the coordinator maps it to ContentionError.

Usage:
    ledger = StockLedger(session)
    ledger.lock_for_update(product_id)
    ledger.adjust(product_id, +5)
    ledger.verify()
    session.commit()
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from backoffice_kernel.db.types import BIGINT_MAX, BIGINT_MIN
from backoffice_kernel.exceptions import (
    InconsistentStockError,
    NegativeStockError,
    ProductNotFoundError,
    StockOutOfRangeError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.product import Product
from backoffice_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


@dataclass
class _StockTrack:
    """What this transaction has observed and done to one product's stock."""

    baseline: int
    net_delta: int = 0
    last_seen: int = 0


class StockLedger(BaseService):
    """
    Transaction-scoped stock adjustments with row locking.

    Contract:
        All methods operate inside the session's current transaction.  The
        effects are invisible to other transactions until the caller
        commits, and vanish if the caller rolls back.

    Guarantees:
        - ``adjust`` is atomic with respect to concurrent adjusters of the
          same product (the UPDATE takes the row lock).
        - ``lock_for_update`` blocks until concurrent holders of the same
          product row commit or abort (bounded by the lock timeout).

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT decide whether a delta is allowed; ``verify`` only checks
          the resulting state.
    """

    def __init__(self, session: Session, allow_negative_stock: bool = False):
        super().__init__(session)
        self._allow_negative = allow_negative_stock
        self._tracks: dict[UUID, _StockTrack] = {}

    def lock_for_update(self, product_id: UUID) -> Product:
        """
        Acquire an exclusive row lock on the product for the rest of the
        transaction and return it with fresh column values.

        Raises:
            ProductNotFoundError: If no such product exists.
        """
        # Unit is eagerly outer-joined; lock only the product row.
        product = self.session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update(of=Product)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if product is None:
            raise ProductNotFoundError(str(product_id))

        stock = int(product.stock)
        track = self._tracks.get(product_id)
        if track is None:
            self._tracks[product_id] = _StockTrack(baseline=stock, last_seen=stock)
        elif track.last_seen != stock:
            # Row changed under us between two observations in one transaction.
            raise InconsistentStockError(str(product_id), track.last_seen, stock)

        logger.debug(
            "product_locked",
            extra={"product_id": str(product_id), "stock": stock},
        )
        return product

    def adjust(self, product_id: UUID, delta: int) -> int:
        """
        Atomically add ``delta`` (positive or negative) to the product's stock.

        Returns:
            The product's stock after the adjustment, as seen by this
            transaction.

        Raises:
            ProductNotFoundError: If no such product exists.
            StockOutOfRangeError: If the result would not fit the column.
        """
        delta = int(delta)
        if not BIGINT_MIN <= delta <= BIGINT_MAX:
            raise StockOutOfRangeError(str(product_id), self._read_stock(product_id), delta)

        # The range guard is part of the statement, so the check and the
        # write see the same row version.
        in_range = (
            Product.stock <= BIGINT_MAX - delta if delta >= 0
            else Product.stock >= BIGINT_MIN - delta
        )
        result = self.session.execute(
            update(Product)
            .where(Product.id == product_id, in_range)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            stock = self._read_stock(product_id)
            logger.warning(
                "stock_out_of_range",
                extra={"product_id": str(product_id), "stock": stock, "delta": delta},
            )
            raise StockOutOfRangeError(str(product_id), stock, delta)

        self._expire_cached_stock(product_id)
        new_stock = self._read_stock(product_id)

        track = self._tracks.get(product_id)
        if track is None:
            track = _StockTrack(baseline=new_stock - delta, last_seen=new_stock - delta)
            self._tracks[product_id] = track

        expected = track.last_seen + delta
        if new_stock != expected:
            raise InconsistentStockError(str(product_id), expected, new_stock)

        track.net_delta += delta
        track.last_seen = new_stock

        logger.info(
            "stock_adjusted",
            extra={
                "product_id": str(product_id),
                "delta": delta,
                "stock": new_stock,
            },
        )
        return new_stock

    def current_stock(self, product_id: UUID) -> int:
        """
        Read the product's stock as seen by this transaction.

        Raises:
            ProductNotFoundError: If no such product exists.
        """
        return self._read_stock(product_id)

    def net_deltas(self) -> dict[UUID, int]:
        """Net stock effect of this transaction, per touched product."""
        return {pid: t.net_delta for pid, t in self._tracks.items() if t.net_delta}

    def verify(self) -> None:
        """
        Re-read every touched product and check it against the ledger's
        record of this transaction.

        Raises:
            InconsistentStockError: stock != baseline + net delta.
            NegativeStockError: stock < 0 and negatives are disallowed.
        """
        for product_id, track in self._tracks.items():
            actual = self._read_stock(product_id)
            expected = track.baseline + track.net_delta
            if actual != expected:
                logger.error(
                    "stock_verification_failed",
                    extra={
                        "product_id": str(product_id),
                        "expected": expected,
                        "actual": actual,
                    },
                )
                raise InconsistentStockError(str(product_id), expected, actual)
            if actual < 0 and not self._allow_negative:
                logger.warning(
                    "stock_negative_rejected",
                    extra={"product_id": str(product_id), "stock": actual},
                )
                raise NegativeStockError(str(product_id), actual)

        logger.debug("stock_verified", extra={"products": len(self._tracks)})

    def _read_stock(self, product_id: UUID) -> int:
        stock = self.session.execute(
            select(Product.stock).where(Product.id == product_id)
        ).scalar_one_or_none()
        if stock is None:
            raise ProductNotFoundError(str(product_id))
        return int(stock)

    def _expire_cached_stock(self, product_id: UUID) -> None:
        # The UPDATE bypasses the identity map; drop any cached stock value.
        cached = self.session.identity_map.get(identity_key(Product, product_id))
        if cached is not None:
            self.session.expire(cached, ["stock"])
