"""
Purchasing Module Service (``backoffice_modules.purchasing.service``).

Responsibility
--------------
The purchase transaction coordinator.  Records purchases (header plus line
items) and keeps every referenced product's stock consistent with the set
of purchases that exist, across create, update and delete, under
concurrent callers.

Architecture
------------
Layer: **Modules** -- orchestration over kernel services.

1. ``EmployeeResolver`` turns the acting user into the purchase's employee.
2. ``PurchaseStore`` persists headers and line items.
3. ``StockLedger`` locks products, applies signed stock deltas and verifies
   them before commit.
4. ``PurchaseSelector`` serves the read side.

Invariants
----------
- For every product P, at every transaction boundary:
  ``P.stock == initial stock + sum(quantity of live line items for P)``.
- Each write is exactly one unit of work on the session: commit on success,
  rollback on any failure, nothing observable in between.
- Update is revert-then-reapply: every existing item's quantity is taken
  back out of stock, the items are replaced, and the new items are added.
  Delete reverts too.
- Products are locked one at a time in the order items were submitted.
  Two purchases naming the same products in opposite orders can deadlock;
  the database aborts one of them, which surfaces as ``ContentionError``.

Failure Modes
-------------
- ``EmployeeNotFoundError``, ``SupplierNotFoundError``,
  ``ProductNotFoundError``, ``PurchaseNotFoundError``: the unit of work is
  rolled back and the error propagates.
- ``InvalidInputError`` subclasses are raised while building the inputs,
  before the unit of work starts.
- ``ContentionError``: lock wait exceeded or deadlock victim.  Retryable.
- ``InvariantError`` subclasses: commit-time stock verification failed.

Usage::

    coordinator = PurchaseCoordinator(session, UserEmployeeResolver(session))
    view = coordinator.create(
        PurchaseInput(items=(PurchaseItemInput(product_id, 3, Decimal("2.00")),)),
        acting_user_id=user_id,
    )
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterable, Iterator, Mapping
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from backoffice_kernel.db.engine import apply_lock_timeout, is_lock_contention, read_only
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.dtos import (
    DeletedPurchase,
    ListQuery,
    PurchaseChanges,
    PurchaseInput,
    PurchaseItemInput,
    PurchasePage,
    PurchaseView,
    coerce_uuid,
)
from backoffice_kernel.exceptions import ContentionError, InvariantError
from backoffice_kernel.logging_config import LogContext, get_logger
from backoffice_kernel.models.purchase import Purchase
from backoffice_kernel.selectors.purchase_selector import PurchaseSelector
from backoffice_kernel.services.employee_resolver import (
    EmployeeResolver,
    UserEmployeeResolver,
)
from backoffice_kernel.services.purchase_store import (
    HeaderChanges,
    PurchaseHeaderData,
    PurchaseStore,
)
from backoffice_kernel.services.stock_ledger import StockLedger
from backoffice_modules.purchasing.config import PurchasingConfig

logger = get_logger("modules.purchasing.service")


class PurchaseCoordinator:
    """
    Atomic purchase writes with stock bookkeeping.

    Contract
    --------
    Constructed with the SQLAlchemy ``Session`` it runs on.  Every write
    opens a unit of work on that session and builds a fresh StockLedger and
    PurchaseStore bound to it; the session is the transaction handle for
    every step.  One coordinator per thread: sessions are not thread-safe.

    Transaction boundary: this service commits on success, rolls back on
    failure.
    """

    def __init__(
        self,
        session: Session,
        employee_resolver: EmployeeResolver | None = None,
        config: PurchasingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._resolver = employee_resolver or UserEmployeeResolver(session)
        self._config = config or PurchasingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._selector = PurchaseSelector(session)

    # =========================================================================
    # Writes
    # =========================================================================

    def create(
        self,
        purchase_input: PurchaseInput | Mapping[str, Any],
        acting_user_id: UUID | str,
    ) -> PurchaseView:
        """
        Create a purchase and add every item's quantity to its product's stock.

        Preconditions:
            - ``acting_user_id`` is linked to an employee.
            - Every item names an existing product, at most once.

        Postconditions:
            - On success the header, its items and all stock increments are
              committed together; on failure none of them are.

        Raises:
            EmployeeNotFoundError, SupplierNotFoundError,
            ProductNotFoundError, InvalidInputError, ContentionError.
        """
        if not isinstance(purchase_input, PurchaseInput):
            purchase_input = PurchaseInput.from_dict(purchase_input)
        user_id = coerce_uuid(acting_user_id, "acting_user_id")

        with LogContext.bind(actor_id=str(user_id)):
            with self._unit_of_work("create") as (ledger, store):
                employee_id = self._resolver.resolve(user_id)
                purchase = store.create_header(
                    PurchaseHeaderData(
                        employee_id=employee_id,
                        purchased_at=self._clock.now(),
                        supplier_id=purchase_input.supplier_id,
                        number=purchase_input.number,
                    )
                )
                with LogContext.bind(purchase_id=str(purchase.id)):
                    self._apply_items(purchase, purchase_input.items, ledger, store)
                    store.recompute_total(purchase)
                    view = PurchaseView.from_model(purchase)
                    deltas = _loggable(ledger.net_deltas())

            logger.info(
                "purchase_created",
                extra={
                    "purchase_id": str(view.id),
                    "number": view.number,
                    "items": len(view.items),
                    "total": str(view.total),
                    "stock_deltas": deltas,
                },
            )
        return view

    def update(
        self,
        purchase_id: UUID | str,
        changes: PurchaseChanges | Mapping[str, Any],
    ) -> PurchaseView:
        """
        Replace a purchase's items (and optionally header fields).

        Revert, replace, reapply: every existing item's quantity is
        subtracted from stock, the items are deleted, header changes are
        applied, then ``changes.items`` are attached and added to stock.
        ``changes.items`` of None leaves the purchase with no items.

        Raises:
            PurchaseNotFoundError, ProductNotFoundError,
            SupplierNotFoundError, InvalidInputError, ContentionError.
        """
        if not isinstance(changes, PurchaseChanges):
            changes = PurchaseChanges.from_dict(changes)
        pid = coerce_uuid(purchase_id, "purchase_id")

        with LogContext.bind(purchase_id=str(pid)):
            with self._unit_of_work("update") as (ledger, store):
                purchase = store.get_by_id(pid, lock=True)
                previous_items = len(purchase.items)

                self._revert_items(purchase, ledger)
                store.replace_items(purchase)
                store.update_header(
                    purchase,
                    HeaderChanges(
                        number=changes.number,
                        supplier_id=changes.supplier_id,
                        clear_supplier=changes.clear_supplier,
                    ),
                )
                self._apply_items(purchase, changes.items or (), ledger, store)
                store.recompute_total(purchase)
                view = PurchaseView.from_model(purchase)
                deltas = _loggable(ledger.net_deltas())

            logger.info(
                "purchase_updated",
                extra={
                    "purchase_id": str(pid),
                    "previous_items": previous_items,
                    "items": len(view.items),
                    "total": str(view.total),
                    "stock_deltas": deltas,
                },
            )
        return view

    def delete(self, purchase_id: UUID | str) -> DeletedPurchase:
        """
        Delete a purchase and take its items' quantities back out of stock.

        Raises:
            PurchaseNotFoundError, ContentionError, NegativeStockError.
        """
        pid = coerce_uuid(purchase_id, "purchase_id")

        with LogContext.bind(purchase_id=str(pid)):
            with self._unit_of_work("delete") as (ledger, store):
                purchase = store.get_by_id(pid, lock=True)
                self._revert_items(purchase, ledger)
                store.delete_header(purchase)
                deltas = _loggable(ledger.net_deltas())

            logger.info(
                "purchase_deleted",
                extra={"purchase_id": str(pid), "stock_deltas": deltas},
            )
        return DeletedPurchase(id=pid)

    # =========================================================================
    # Reads
    # =========================================================================

    def find_one(self, purchase_id: UUID | str) -> PurchaseView:
        """
        Raises:
            PurchaseNotFoundError: No such purchase.
        """
        pid = coerce_uuid(purchase_id, "purchase_id")
        with read_only(self._session, "find_one"):
            return self._selector.get_by_id(pid)

    def find(self, query: ListQuery | Mapping[str, Any] | None = None) -> PurchasePage:
        """List purchases.  Also accepts raw query parameters (see ListQuery.from_params)."""
        if query is None:
            query = ListQuery()
        elif not isinstance(query, ListQuery):
            query = ListQuery.from_params(query)
        with read_only(self._session, "find"):
            return self._selector.list(query)

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[tuple[StockLedger, PurchaseStore]]:
        """
        One transaction on the coordinator's session.

        Yields a ledger and store bound to the session.  On normal exit the
        ledger is verified and the session committed; on any exception the
        session is rolled back and the exception re-raised, with lock
        contention translated to ContentionError.
        """
        session = self._session
        ledger = StockLedger(session, allow_negative_stock=self._config.allow_negative_stock)
        store = PurchaseStore(
            session,
            number_prefix=self._config.number_prefix,
            number_width=self._config.number_width,
        )
        try:
            apply_lock_timeout(session, self._config.lock_timeout_ms)
            yield ledger, store
            if self._config.verify_stock_on_commit:
                ledger.verify()
            session.commit()
        except DBAPIError as exc:
            session.rollback()
            if is_lock_contention(exc):
                logger.warning(
                    "unit_of_work_contention",
                    extra={"operation": operation, "error": str(exc.orig)},
                )
                raise ContentionError(operation, str(exc.orig)) from exc
            logger.error(
                "unit_of_work_rolled_back",
                extra={"operation": operation},
                exc_info=True,
            )
            raise
        except Exception as exc:
            session.rollback()
            # Invariant failures are defects, everything else is caller error.
            log = logger.error if isinstance(exc, InvariantError) else logger.warning
            log(
                "unit_of_work_rolled_back",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise

        logger.debug("unit_of_work_committed", extra={"operation": operation})

    @staticmethod
    def _apply_items(
        purchase: Purchase,
        items: Iterable[PurchaseItemInput],
        ledger: StockLedger,
        store: PurchaseStore,
    ) -> None:
        for item in items:
            product = ledger.lock_for_update(item.product_id)
            unit_cost = (
                item.unit_cost if item.unit_cost is not None else Decimal(product.cost)
            )
            store.attach_item(purchase, product, item.quantity, unit_cost)
            ledger.adjust(product.id, item.quantity)

    @staticmethod
    def _revert_items(purchase: Purchase, ledger: StockLedger) -> None:
        for item in list(purchase.items):
            ledger.adjust(item.product_id, -item.quantity)


def _loggable(deltas: dict[UUID, int]) -> dict[str, int]:
    return {str(pid): delta for pid, delta in deltas.items()}
