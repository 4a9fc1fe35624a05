"""
Module: backoffice_kernel.models.sale
Responsibility: ORM persistence for sales (header + line items).  Sales are
    recorded by the point-of-sale subsystem; the back office only reads them
    for reporting.
Architecture position: Kernel > Models.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString
from backoffice_kernel.models.party import Customer
from backoffice_kernel.models.product import Product


class Sale(TrackedBase):
    """Sale header."""

    __tablename__ = "sales"

    __table_args__ = (
        UniqueConstraint("number", name="uq_sale_number"),
        Index("idx_sale_sold_at", "sold_at"),
    )

    number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=True,
    )
    total: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    sold_at: Mapped[datetime] = mapped_column(nullable=False)

    customer: Mapped[Customer | None] = relationship(lazy="joined")
    items: Mapped[list["SaleItem"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Sale {self.number} total={self.total}>"


class SaleItem(TrackedBase):
    """One line item of a sale."""

    __tablename__ = "sale_items"

    __table_args__ = (
        UniqueConstraint("sale_id", "product_id", name="uq_sale_item_product"),
        Index("idx_sale_item_product", "product_id"),
    )

    sale_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sale: Mapped[Sale] = relationship(back_populates="items")
    product: Mapped[Product] = relationship(lazy="joined")
