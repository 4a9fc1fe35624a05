"""
Module: backoffice_kernel.models.product
Responsibility: ORM persistence for the product catalogue: products and their
    units of measure.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - sku is unique (uq_product_sku).
    - stock is an integer.  It is mutated ONLY through
      StockLedger.adjust(); catalogue updates never touch it.
    - expiration_date is NULL whenever has_expiration is False (enforced by
      the catalogue service, not the schema).

Failure modes:
    - IntegrityError on duplicate sku.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice_kernel.db.base import TrackedBase, UUIDString


class ProductStatus(str, Enum):
    """Catalogue status of a product."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Unit(TrackedBase):
    """Unit of measure (e.g. "Kilogram", "kg")."""

    __tablename__ = "units"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<Unit {self.symbol}>"


class Product(TrackedBase):
    """
    A stock-keeping product.

    Contract:
        ``stock`` reflects the product's initial stock plus every live
        purchase line item referencing it (minus sales, owned elsewhere).
        Only StockLedger may change it.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_sku"),
        Index("idx_product_name", "name"),
        Index("idx_product_expiration", "expiration_date"),
        Index("idx_product_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    stock: Mapped[int] = mapped_column(nullable=False, default=0)
    stock_min: Mapped[int] = mapped_column(nullable=False, default=0)

    cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    has_expiration: Mapped[bool] = mapped_column(nullable=False, default=False)
    expiration_date: Mapped[date | None] = mapped_column(nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductStatus.ACTIVE.value,
    )

    unit_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("units.id"), nullable=True,
    )
    unit: Mapped[Unit | None] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Product {self.sku} stock={self.stock}>"
