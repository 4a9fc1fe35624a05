"""
Module: backoffice_kernel.models.purchase
Responsibility: ORM persistence for purchases: the purchase header and its
    line items (the purchase <-> product join carrying quantity and unit cost).
Architecture position: Kernel > Models.  May import from db/ and sibling
    model modules only.

Invariants enforced:
    - A purchase number is unique (uq_purchase_number).
    - A product appears at most once per purchase
      (uq_purchase_item_product on (purchase_id, product_id)).
    - Line items are owned by their purchase: deleting the header deletes
      the items (ORM delete-orphan cascade + ON DELETE CASCADE).
    - quantity > 0 and unit_cost >= 0 (check constraints).
    - unit_cost is the cost recorded at purchase time, independent of the
      product's current cost.

Failure modes:
    - IntegrityError on duplicate number, duplicate product in one purchase,
      dangling supplier/employee/product reference, or a check violation.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString
from backoffice_kernel.models.party import Employee, Supplier
from backoffice_kernel.models.product import Product


class Purchase(TrackedBase):
    """
    Purchase header.

    Contract:
        Created, mutated and deleted only by the PurchaseCoordinator.
        ``total`` is derived from the item set on every write.
    """

    __tablename__ = "purchases"

    __table_args__ = (
        UniqueConstraint("number", name="uq_purchase_number"),
        Index("idx_purchase_purchased_at", "purchased_at"),
        Index("idx_purchase_supplier", "supplier_id"),
    )

    number: Mapped[str] = mapped_column(String(50), nullable=False)

    supplier_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("employees.id"), nullable=False,
    )

    total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    purchased_at: Mapped[datetime] = mapped_column(nullable=False)

    supplier: Mapped[Supplier | None] = relationship(lazy="joined")
    employee: Mapped[Employee] = relationship(lazy="joined")

    items: Mapped[list["PurchaseItem"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.number} items={len(self.items)} total={self.total}>"


class PurchaseItem(TrackedBase):
    """
    One line item of a purchase.

    Logical key: (purchase_id, product_id).
    """

    __tablename__ = "purchase_items"

    __table_args__ = (
        UniqueConstraint("purchase_id", "product_id", name="uq_purchase_item_product"),
        CheckConstraint("quantity > 0", name="ck_purchase_item_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_purchase_item_cost_non_negative"),
        Index("idx_purchase_item_product", "product_id"),
    )

    purchase_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )

    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)

    # Submission order within the purchase
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    purchase: Mapped[Purchase] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<PurchaseItem purchase={self.purchase_id} product={self.product_id} "
            f"qty={self.quantity}>"
        )
