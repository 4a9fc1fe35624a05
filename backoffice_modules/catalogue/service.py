"""
Catalogue Module Service (``backoffice_modules.catalogue.service``).

Responsibility
--------------
Product catalogue maintenance and queries: the paged product listing with
search, one typed filter and sort; the expiring-soon list; free-text search
over name and sku; product create/read/update/delete; and the unit list.

Architecture
------------
Layer: **Modules**.  Reads share the listing mechanics of
``backoffice_kernel.selectors.listing`` and the typed filters of
``backoffice_kernel.domain.filters``.

Invariants
----------
- Stock is never written here after creation.  Only the StockLedger
  changes it, so catalogue edits cannot race with purchase bookkeeping.
- A product referenced by purchase or sale items is never deleted.
- Each write owns its transaction boundary: commit on success, rollback on
  failure.

Failure Modes
-------------
- ``ProductNotFoundError`` / ``UnitNotFoundError`` for dangling ids.
- ``DuplicateSkuError`` when the sku belongs to another product.
- ``InvalidDateError`` for an unparseable expiration date.
- ``ProductReferencedError`` on delete of a referenced product.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any, Iterator, Mapping
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from backoffice_kernel.db.engine import read_only
from backoffice_kernel.domain.clock import Clock, SystemClock
from backoffice_kernel.domain.dtos import ListQuery, Pagination, coerce_uuid
from backoffice_kernel.domain.filters import FieldKind, FilterBuilder, FilterField
from backoffice_kernel.exceptions import (
    DuplicateSkuError,
    ProductNotFoundError,
    ProductReferencedError,
    UnitNotFoundError,
)
from backoffice_kernel.logging_config import get_logger
from backoffice_kernel.models.product import Product, ProductStatus, Unit
from backoffice_kernel.models.purchase import PurchaseItem
from backoffice_kernel.models.sale import SaleItem
from backoffice_kernel.selectors.listing import (
    filter_predicates,
    paginate,
    sort_clauses,
)
from backoffice_modules.catalogue.config import CatalogueConfig
from backoffice_modules.catalogue.models import (
    DeletedProduct,
    ProductChanges,
    ProductInput,
    ProductPage,
    ProductView,
    UnitView,
)

logger = get_logger("modules.catalogue.service")

# Accepted spellings for the status filter, both English and the legacy
# Spanish back office values.
STATUS_KEYWORDS = {
    "active": ProductStatus.ACTIVE.value,
    "activo": ProductStatus.ACTIVE.value,
    "inactive": ProductStatus.INACTIVE.value,
    "inactivo": ProductStatus.INACTIVE.value,
}

PRODUCT_FILTERS = FilterBuilder({
    "cost": FilterField(Product.cost, FieldKind.DECIMAL),
    "price": FilterField(Product.price, FieldKind.DECIMAL),
    "stock": FilterField(Product.stock, FieldKind.INTEGER),
    "stock_min": FilterField(Product.stock_min, FieldKind.INTEGER),
    "stockMin": FilterField(Product.stock_min, FieldKind.INTEGER),
    "expiration_date": FilterField(Product.expiration_date, FieldKind.DATE),
    "expirationDate": FilterField(Product.expiration_date, FieldKind.DATE),
    "status": FilterField(Product.status, FieldKind.STATUS, STATUS_KEYWORDS),
    "name": FilterField(Product.name, FieldKind.TEXT),
    "sku": FilterField(Product.sku, FieldKind.TEXT),
})

SORTABLE_COLUMNS = {
    "name": Product.name,
    "sku": Product.sku,
    "cost": Product.cost,
    "price": Product.price,
    "stock": Product.stock,
    "stock_min": Product.stock_min,
    "stockMin": Product.stock_min,
    "expiration_date": Product.expiration_date,
    "expirationDate": Product.expiration_date,
    "created_at": Product.created_at,
    "createdAt": Product.created_at,
}

DEFAULT_ORDER = (Product.created_at.desc(), Product.sku.asc())


class ProductCatalogService:
    """
    Product catalogue queries and maintenance.

    Transaction boundary: writes commit on success and roll back on failure;
    reads end the transaction they opened.
    """

    def __init__(
        self,
        session: Session,
        config: CatalogueConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or CatalogueConfig.with_defaults()
        self._clock = clock or SystemClock()

    # =========================================================================
    # Queries
    # =========================================================================

    def find(self, query: ListQuery | Mapping[str, Any] | None = None) -> ProductPage:
        """
        One page of products plus the count matching the same search and
        filters.  ``query.search`` matches anywhere in the name.
        """
        query = _as_list_query(query)
        predicates = filter_predicates("products", PRODUCT_FILTERS, query.filters)
        if query.search:
            predicates.append(Product.name.like(f"%{query.search}%"))

        with read_only(self._session, "find"):
            total = self._session.execute(
                select(func.count()).select_from(Product).where(*predicates)
            ).scalar_one()
            stmt = (
                select(Product)
                .where(*predicates)
                .order_by(*sort_clauses(
                    "products",
                    SORTABLE_COLUMNS,
                    query.sort_column,
                    query.sort_direction,
                    DEFAULT_ORDER,
                ))
                .execution_options(populate_existing=True)
            )
            products = self._session.execute(
                paginate(stmt, self._page(query.pagination))
            ).unique().scalars().all()
            return ProductPage(
                products=tuple(ProductView.from_model(p) for p in products),
                total=int(total),
            )

    def find_expiring_soon(self, today: date | None = None) -> list[ProductView]:
        """Products expiring between today and today + the window, earliest first."""
        start = today or self._clock.today()
        end = start + timedelta(days=self._config.expiring_window_days)
        with read_only(self._session, "find_expiring_soon"):
            products = self._session.execute(
                select(Product)
                .where(Product.expiration_date.between(start, end))
                .order_by(Product.expiration_date.asc(), Product.name.asc())
                .execution_options(populate_existing=True)
            ).unique().scalars().all()
            return [ProductView.from_model(p) for p in products]

    def search(self, query: ListQuery | Mapping[str, Any] | None = None) -> list[ProductView]:
        """Substring match on name or sku, ordered by name descending."""
        query = _as_list_query(query)
        stmt = select(Product).order_by(Product.name.desc(), Product.sku.desc())
        if query.search:
            pattern = f"%{query.search}%"
            stmt = stmt.where(or_(Product.name.like(pattern), Product.sku.like(pattern)))

        with read_only(self._session, "search"):
            products = self._session.execute(
                paginate(
                    stmt.execution_options(populate_existing=True),
                    self._page(query.pagination),
                )
            ).unique().scalars().all()
            return [ProductView.from_model(p) for p in products]

    def find_one(self, product_id: UUID | str) -> ProductView:
        pid = coerce_uuid(product_id, "product_id")
        with read_only(self._session, "find_one"):
            return ProductView.from_model(self._get(pid))

    def find_units(self) -> list[UnitView]:
        with read_only(self._session, "find_units"):
            units = self._session.execute(
                select(Unit).order_by(Unit.name.asc())
            ).scalars().all()
            return [UnitView.from_model(u) for u in units]

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, data: ProductInput | Mapping[str, Any]) -> ProductView:
        """
        Raises:
            DuplicateSkuError, UnitNotFoundError, InvalidInputError.
        """
        if not isinstance(data, ProductInput):
            data = ProductInput.from_dict(data)

        with self._write("create"):
            self._require_sku_free(data.sku)
            if data.unit_id is not None:
                self._require_unit(data.unit_id)

            product = Product(
                name=data.name,
                sku=data.sku,
                description=data.description,
                stock=data.stock,
                stock_min=data.stock_min,
                cost=data.cost,
                price=data.price,
                has_expiration=data.has_expiration,
                expiration_date=data.expiration_date,
                status=data.status,
                unit_id=data.unit_id,
            )
            self._session.add(product)
            self._session.flush()
            view = ProductView.from_model(product)

        logger.info(
            "product_created",
            extra={"product_id": str(view.id), "sku": view.sku, "stock": view.stock},
        )
        return view

    def update(
        self,
        product_id: UUID | str,
        changes: ProductChanges | Mapping[str, Any],
    ) -> ProductView:
        """
        Apply catalogue changes.  Stock is not editable here.

        Expiration handling: when the product (after the change) does not
        track expiration, its expiration date is cleared; otherwise a new
        date replaces the old one, ``clear_expiration_date`` removes it, and
        no date leaves it as it was.

        Raises:
            ProductNotFoundError, DuplicateSkuError, UnitNotFoundError,
            InvalidDateError, InvalidInputError.
        """
        if not isinstance(changes, ProductChanges):
            changes = ProductChanges.from_dict(changes)
        pid = coerce_uuid(product_id, "product_id")

        with self._write("update"):
            product = self._get(pid)

            if changes.sku is not None and changes.sku != product.sku:
                self._require_sku_free(changes.sku)
                product.sku = changes.sku
            if changes.unit_id is not None:
                product.unit = self._require_unit(changes.unit_id)

            for name in ("name", "description", "cost", "price", "stock_min", "status"):
                value = getattr(changes, name)
                if value is not None:
                    setattr(product, name, value)

            if changes.has_expiration is not None:
                product.has_expiration = changes.has_expiration
            if not product.has_expiration or changes.clear_expiration_date:
                product.expiration_date = None
            elif changes.expiration_date is not None:
                product.expiration_date = changes.expiration_date

            self._session.flush()
            view = ProductView.from_model(product)

        logger.info("product_updated", extra={"product_id": str(pid)})
        return view

    def delete(self, product_id: UUID | str) -> DeletedProduct:
        """
        Raises:
            ProductNotFoundError, ProductReferencedError.
        """
        pid = coerce_uuid(product_id, "product_id")

        with self._write("delete"):
            product = self._get(pid)
            purchase_items = self._count_references(PurchaseItem, pid)
            sale_items = self._count_references(SaleItem, pid)
            if purchase_items or sale_items:
                raise ProductReferencedError(str(pid), purchase_items, sale_items)
            self._session.delete(product)
            self._session.flush()

        logger.info("product_deleted", extra={"product_id": str(pid)})
        return DeletedProduct(id=pid)

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _write(self, operation: str) -> Iterator[None]:
        try:
            yield
            self._session.commit()
        except Exception as exc:
            self._session.rollback()
            logger.warning(
                "catalogue_write_rolled_back",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise

    def _page(self, pagination: Pagination) -> Pagination:
        limit = pagination.limit
        if limit is None:
            limit = self._config.default_page_size
        return Pagination(
            limit=min(limit, self._config.max_page_size),
            offset=pagination.offset,
        )

    def _get(self, product_id: UUID) -> Product:
        product = self._session.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        ).unique().scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _require_unit(self, unit_id: UUID) -> Unit:
        unit = self._session.get(Unit, unit_id)
        if unit is None:
            raise UnitNotFoundError(str(unit_id))
        return unit

    def _require_sku_free(self, sku: str) -> None:
        taken = self._session.execute(
            select(Product.id).where(Product.sku == sku)
        ).first()
        if taken is not None:
            raise DuplicateSkuError(sku)

    def _count_references(self, model: type[PurchaseItem] | type[SaleItem], product_id: UUID) -> int:
        return int(self._session.execute(
            select(func.count()).select_from(model).where(model.product_id == product_id)
        ).scalar_one())


def _as_list_query(query: ListQuery | Mapping[str, Any] | None) -> ListQuery:
    if query is None:
        return ListQuery()
    if isinstance(query, ListQuery):
        return query
    return ListQuery.from_params(query)
