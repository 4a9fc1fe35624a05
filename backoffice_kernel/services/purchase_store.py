"""
PurchaseStore -- transaction-scoped persistence for purchase headers and
line items.

Responsibility:
    Creates, loads, mutates and deletes purchases inside the caller's
    transaction.  Knows nothing about stock: keeping stock consistent with
    the stored items is the PurchaseCoordinator's job.

Architecture position:
    Kernel > Services -- imperative shell.  One instance per transaction,
    constructed with the session that IS the transaction handle.

Invariants enforced:
    - Purchase numbers are unique.  Checked before insert/rename, with the
      uq_purchase_number constraint as the backstop for concurrent writers.
    - ``replace_items`` is a full replace: existing items are deleted and
      flushed before any new item is inserted, so re-adding the same product
      never trips uq_purchase_item_product.
    - ``total`` is always round_money(sum(quantity * unit_cost)).

Failure modes:
    - PurchaseNotFoundError from get_by_id.
    - SupplierNotFoundError when a supplier reference does not resolve.
    - DuplicatePurchaseNumberError on a number already in use.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from backoffice_kernel.db.types import round_money
from backoffice_kernel.exceptions import (
    DuplicatePurchaseNumberError,
    PurchaseNotFoundError,
    SupplierNotFoundError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.party import Supplier
from backoffice_kernel.models.product import Product
from backoffice_kernel.models.purchase import Purchase, PurchaseItem
from backoffice_kernel.services.base import BaseService
from backoffice_kernel.services.sequence_service import (
    SequenceService,
    format_sequence_number,
)

logger = get_logger("services.purchase_store")


@dataclass(frozen=True)
class PurchaseHeaderData:
    """Header fields for a new purchase.  ``number`` None means allocate."""

    employee_id: UUID
    purchased_at: datetime
    supplier_id: UUID | None = None
    number: str | None = None


@dataclass(frozen=True)
class HeaderChanges:
    """Header fields to change.  None leaves a field as it is."""

    number: str | None = None
    supplier_id: UUID | None = None
    clear_supplier: bool = False


class PurchaseStore(BaseService):
    """
    Write-side purchase persistence.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT touch product stock.
    """

    def __init__(self, session, number_prefix: str = "PUR", number_width: int = 6):
        super().__init__(session)
        self._number_prefix = number_prefix
        self._number_width = number_width
        self._sequences = SequenceService(session)

    # -------------------------------------------------------------------------
    # Headers
    # -------------------------------------------------------------------------

    def create_header(self, data: PurchaseHeaderData) -> Purchase:
        """
        Insert a purchase header with no items and a zero total.

        Raises:
            SupplierNotFoundError: ``data.supplier_id`` does not exist.
            DuplicatePurchaseNumberError: ``data.number`` is already used.
        """
        if data.supplier_id is not None:
            self.require_supplier(data.supplier_id)

        number = data.number
        if number is None:
            number = self._allocate_number()
        else:
            self._require_number_free(number)

        purchase = Purchase(
            number=number,
            supplier_id=data.supplier_id,
            employee_id=data.employee_id,
            total=Decimal("0"),
            purchased_at=data.purchased_at,
        )
        self.session.add(purchase)
        self._flush_guarding_number(number)

        logger.info(
            "purchase_header_created",
            extra={"purchase_id": str(purchase.id), "number": number},
        )
        return purchase

    def get_by_id(self, purchase_id: UUID, lock: bool = False) -> Purchase:
        """
        Load a purchase with its items, fresh from the database.

        With ``lock=True`` the header row is locked for the rest of the
        transaction, so concurrent updates/deletes of the same purchase run
        one after the other.

        Raises:
            PurchaseNotFoundError: No such purchase.
        """
        if lock:
            # Lock the bare header row; the eager-loaded query below outer
            # joins the optional supplier, which PostgreSQL cannot lock.
            locked = self.session.execute(
                select(Purchase.id).where(Purchase.id == purchase_id).with_for_update()
            ).scalar_one_or_none()
            if locked is None:
                raise PurchaseNotFoundError(str(purchase_id))

        purchase = self.session.execute(
            select(Purchase)
            .where(Purchase.id == purchase_id)
            .execution_options(populate_existing=True)
        ).unique().scalar_one_or_none()

        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        return purchase

    def update_header(self, purchase: Purchase, changes: HeaderChanges) -> Purchase:
        """
        Apply header changes and recompute the total.

        Raises:
            SupplierNotFoundError: New supplier does not exist.
            DuplicatePurchaseNumberError: New number belongs to another purchase.
        """
        if changes.number is not None and changes.number != purchase.number:
            self._require_number_free(changes.number)
            purchase.number = changes.number

        if changes.clear_supplier:
            purchase.supplier_id = None
            purchase.supplier = None
        elif changes.supplier_id is not None:
            purchase.supplier = self.require_supplier(changes.supplier_id)

        self.recompute_total(purchase)
        self._flush_guarding_number(purchase.number)
        return purchase

    def delete_header(self, purchase: Purchase) -> None:
        """Delete the purchase; its items go with it."""
        purchase_id = purchase.id
        self.session.delete(purchase)
        self.session.flush()
        logger.info("purchase_header_deleted", extra={"purchase_id": str(purchase_id)})

    def recompute_total(self, purchase: Purchase) -> Decimal:
        total = round_money(
            sum(
                (Decimal(item.unit_cost) * item.quantity for item in purchase.items),
                Decimal("0"),
            )
        )
        purchase.total = total
        return total

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def attach_item(
        self,
        purchase: Purchase,
        product: Product,
        quantity: int,
        unit_cost: Decimal,
    ) -> PurchaseItem:
        """Append one line item at the next position."""
        item = PurchaseItem(
            product_id=product.id,
            quantity=quantity,
            unit_cost=unit_cost,
            position=len(purchase.items),
        )
        item.product = product
        purchase.items.append(item)
        self.session.flush()
        return item

    def replace_items(
        self,
        purchase: Purchase,
        items: Iterable[tuple[Product, int, Decimal]] = (),
    ) -> None:
        """
        Delete every existing line item, then insert ``items`` in order.

        Each entry is ``(product, quantity, unit_cost)``.
        """
        removed = len(purchase.items)
        purchase.items.clear()
        # Deletes must reach the database before the re-inserts.
        self.session.flush()

        for product, quantity, unit_cost in items:
            self.attach_item(purchase, product, quantity, unit_cost)

        logger.debug(
            "purchase_items_replaced",
            extra={
                "purchase_id": str(purchase.id),
                "removed": removed,
                "added": len(purchase.items),
            },
        )

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    def require_supplier(self, supplier_id: UUID) -> Supplier:
        supplier = self.session.get(Supplier, supplier_id)
        if supplier is None:
            raise SupplierNotFoundError(str(supplier_id))
        return supplier

    def _allocate_number(self) -> str:
        value = self._sequences.next_value(SequenceService.PURCHASE_NUMBER)
        number = format_sequence_number(self._number_prefix, value, self._number_width)
        # A caller may have taken this number explicitly; skip past it.
        while self._number_taken(number):
            value = self._sequences.next_value(SequenceService.PURCHASE_NUMBER)
            number = format_sequence_number(
                self._number_prefix, value, self._number_width,
            )
        return number

    def _number_taken(self, number: str) -> bool:
        return self.session.execute(
            select(Purchase.id).where(Purchase.number == number)
        ).first() is not None

    def _require_number_free(self, number: str) -> None:
        if self._number_taken(number):
            raise DuplicatePurchaseNumberError(number)

    def _flush_guarding_number(self, number: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            message = str(exc.orig)
            if "uq_purchase_number" in message or "purchases.number" in message:
                raise DuplicatePurchaseNumberError(number) from exc
            raise
