"""
Reporting Domain Models (``backoffice_modules.reporting.models``).

Frozen report DTOs.  No ORM instances escape the reporting service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from backoffice_kernel.db.types import round_money
from backoffice_kernel.models.sale import Sale, SaleItem


@dataclass(frozen=True)
class CustomerRef:
    id: UUID
    fullname: str
    dni: str


@dataclass(frozen=True)
class SaleItemView:
    product_id: UUID
    product_name: str
    sku: str
    quantity: int
    unit_price: Decimal

    @classmethod
    def from_model(cls, item: SaleItem) -> SaleItemView:
        return cls(
            product_id=item.product_id,
            product_name=item.product.name,
            sku=item.product.sku,
            quantity=int(item.quantity),
            unit_price=Decimal(item.unit_price),
        )


@dataclass(frozen=True)
class SaleView:
    id: UUID
    number: str
    customer: CustomerRef | None
    total: Decimal
    sold_at: datetime
    items: tuple[SaleItemView, ...]

    @classmethod
    def from_model(cls, sale: Sale) -> SaleView:
        customer = None
        if sale.customer is not None:
            customer = CustomerRef(
                id=sale.customer.id,
                fullname=sale.customer.fullname,
                dni=sale.customer.dni,
            )
        return cls(
            id=sale.id,
            number=sale.number,
            customer=customer,
            total=round_money(Decimal(sale.total)),
            sold_at=sale.sold_at,
            items=tuple(SaleItemView.from_model(i) for i in sale.items),
        )


@dataclass(frozen=True)
class SalesReport:
    """
    Sales in an inclusive date range.

    ``start`` is midnight of the first day and ``end`` the last instant of
    the last day; both are also given as ISO-8601 strings.
    """

    sales: tuple[SaleView, ...]
    total: Decimal
    count: int
    start: datetime
    end: datetime

    @property
    def start_date(self) -> str:
        return self.start.isoformat()

    @property
    def end_date(self) -> str:
        return self.end.isoformat()
