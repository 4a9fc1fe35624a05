"""
Module: backoffice_kernel.selectors.purchase_selector
Responsibility: Read-only access to purchases: one purchase by id, and the
    paged, searchable, filterable purchase listing.
Architecture position: Kernel > Selectors.  Not transaction scoped: reads
    whatever is committed (plus the caller's own uncommitted work, if the
    session has any).

Invariants enforced:
    - Read-only, returns PurchaseView / PurchasePage DTOs only.
    - ``total`` in PurchasePage counts every purchase matching the same
      search and filter predicates as the page, ignoring limit/offset.
    - Unrecognised filters and sort columns never fail the listing.

Failure modes:
    - PurchaseNotFoundError from get_by_id.
"""

from uuid import UUID

from sqlalchemy import Date, func, select

from backoffice_kernel.domain.dtos import ListQuery, PurchasePage, PurchaseView
from backoffice_kernel.domain.filters import FieldKind, FilterBuilder, FilterField
from backoffice_kernel.exceptions import PurchaseNotFoundError
from backoffice_kernel.models.purchase import Purchase
from backoffice_kernel.selectors.base import BaseSelector
from backoffice_kernel.selectors.listing import (
    filter_predicates,
    paginate,
    sort_clauses,
)

PURCHASE_FILTERS = FilterBuilder({
    "number": FilterField(Purchase.number, FieldKind.TEXT),
    "total": FilterField(Purchase.total, FieldKind.DECIMAL),
    "purchased_at": FilterField(
        func.date(Purchase.purchased_at, type_=Date), FieldKind.DATE,
    ),
})

SORTABLE_COLUMNS = {
    "number": Purchase.number,
    "total": Purchase.total,
    "purchased_at": Purchase.purchased_at,
    "purchasedAt": Purchase.purchased_at,
    "created_at": Purchase.created_at,
    "createdAt": Purchase.created_at,
}

# Newest first
DEFAULT_ORDER = (Purchase.purchased_at.desc(), Purchase.number.desc())


class PurchaseSelector(BaseSelector):
    """
    Selector for purchase queries.

    Guarantees:
        - Rows are re-read from the database on every call
          (populate_existing), so two calls without intervening writes
          return equal views.
    """

    def get_by_id(self, purchase_id: UUID) -> PurchaseView:
        purchase = self.session.execute(
            select(Purchase)
            .where(Purchase.id == purchase_id)
            .execution_options(populate_existing=True)
        ).unique().scalar_one_or_none()

        if purchase is None:
            raise PurchaseNotFoundError(str(purchase_id))
        return PurchaseView.from_model(purchase)

    def list(self, query: ListQuery) -> PurchasePage:
        """
        One page of purchases plus the number of purchases matching.

        ``query.search`` matches anywhere in the purchase number.
        """
        predicates = filter_predicates("purchases", PURCHASE_FILTERS, query.filters)
        if query.search:
            predicates.append(Purchase.number.like(f"%{query.search}%"))

        total = self.session.execute(
            select(func.count()).select_from(Purchase).where(*predicates)
        ).scalar_one()

        stmt = (
            select(Purchase)
            .where(*predicates)
            .order_by(*sort_clauses(
                "purchases",
                SORTABLE_COLUMNS,
                query.sort_column,
                query.sort_direction,
                DEFAULT_ORDER,
            ))
            .execution_options(populate_existing=True)
        )
        purchases = self.session.execute(
            paginate(stmt, query.pagination)
        ).unique().scalars().all()

        return PurchasePage(
            purchases=tuple(PurchaseView.from_model(p) for p in purchases),
            total=int(total),
        )
