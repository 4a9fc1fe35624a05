"""
DTOs -- Pure data transfer objects for purchasing.

Responsibility:
    Defines the immutable inputs accepted by the PurchaseCoordinator
    (PurchaseItemInput, PurchaseInput, PurchaseChanges), the read views it
    returns (PurchaseView, PurchaseItemView, PurchasePage, DeletedPurchase),
    and the generic listing query (ListQuery, Pagination, SortDirection).

Architecture position:
    Kernel > Domain -- pure, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Line quantities are positive integers; unit costs are non-negative
      finite decimals (validated on construction).
    - A product appears at most once per item set.
    - Views never expose ORM instances.

Failure modes:
    - InvalidQuantityError / InvalidCostError / DuplicateLineItemError /
      InvalidInputError on construction with bad input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping
from uuid import UUID

from backoffice_kernel.db.types import round_money, to_money, to_quantity
from backoffice_kernel.domain.filters import FilterRequest
from backoffice_kernel.exceptions import DuplicateLineItemError, InvalidInputError

if TYPE_CHECKING:
    from backoffice_kernel.models.purchase import Purchase as PurchaseModel
    from backoffice_kernel.models.purchase import PurchaseItem as PurchaseItemModel


def coerce_uuid(value: UUID | str, field_name: str) -> UUID:
    """Accept a UUID or its string form; anything else is invalid input."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise InvalidInputError(
            f"{field_name} is not a valid identifier: {value!r}"
        ) from exc


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class PurchaseItemInput:
    """
    One requested line item.

    ``unit_cost`` None means "use the product's current cost", resolved by
    the coordinator while the product row is locked.
    """

    product_id: UUID
    quantity: int
    unit_cost: Decimal | None = None

    def __post_init__(self):
        pid = coerce_uuid(self.product_id, "product_id")
        object.__setattr__(self, "product_id", pid)
        object.__setattr__(self, "quantity", to_quantity(self.quantity, pid))
        if self.unit_cost is not None:
            object.__setattr__(self, "unit_cost", to_money(self.unit_cost, "unit_cost"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PurchaseItemInput:
        """Accepts snake_case or camelCase keys (productId, unitCost)."""
        return cls(
            product_id=data.get("product_id", data.get("productId")),
            quantity=data.get("quantity"),
            unit_cost=data.get("unit_cost", data.get("unitCost")),
        )


def _item_set(items: Iterable[PurchaseItemInput]) -> tuple[PurchaseItemInput, ...]:
    result = tuple(items)
    seen: set[UUID] = set()
    for item in result:
        if not isinstance(item, PurchaseItemInput):
            raise InvalidInputError(f"Expected PurchaseItemInput, got {type(item).__name__}")
        if item.product_id in seen:
            raise DuplicateLineItemError(str(item.product_id))
        seen.add(item.product_id)
    return result


def _purchase_number(value: str | None) -> str | None:
    if value is None:
        return None
    number = str(value).strip()
    if not number or len(number) > 50:
        raise InvalidInputError(f"Purchase number must be 1-50 characters, got {value!r}")
    return number


@dataclass(frozen=True)
class PurchaseInput:
    """
    Data for a new purchase.

    ``number`` None means "allocate the next number from the sequence".
    """

    items: tuple[PurchaseItemInput, ...] = ()
    supplier_id: UUID | None = None
    number: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "items", _item_set(self.items))
        object.__setattr__(self, "number", _purchase_number(self.number))
        if self.supplier_id is not None:
            object.__setattr__(
                self, "supplier_id", coerce_uuid(self.supplier_id, "supplier_id"),
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PurchaseInput:
        raw_items = data.get("items", data.get("products")) or ()
        return cls(
            items=tuple(PurchaseItemInput.from_dict(i) for i in raw_items),
            supplier_id=data.get("supplier_id", data.get("supplierId")),
            number=data.get("number"),
        )


@dataclass(frozen=True)
class PurchaseChanges:
    """
    Changes to an existing purchase.

    Header fields left as None are unchanged (``clear_supplier`` removes the
    supplier).  ``items`` is the complete new item set: the update reverts
    and replaces every existing item, so None leaves the purchase with no
    items.
    """

    items: tuple[PurchaseItemInput, ...] | None = None
    supplier_id: UUID | None = None
    number: str | None = None
    clear_supplier: bool = False

    def __post_init__(self):
        if self.items is not None:
            object.__setattr__(self, "items", _item_set(self.items))
        object.__setattr__(self, "number", _purchase_number(self.number))
        if self.supplier_id is not None:
            if self.clear_supplier:
                raise InvalidInputError("supplier_id and clear_supplier are mutually exclusive")
            object.__setattr__(
                self, "supplier_id", coerce_uuid(self.supplier_id, "supplier_id"),
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PurchaseChanges:
        raw_items = data.get("items", data.get("products"))
        return cls(
            items=(
                tuple(PurchaseItemInput.from_dict(i) for i in raw_items)
                if raw_items is not None else None
            ),
            supplier_id=data.get("supplier_id", data.get("supplierId")),
            number=data.get("number"),
        )


# =============================================================================
# Views
# =============================================================================


@dataclass(frozen=True)
class SupplierRef:
    id: UUID
    name: str
    ruc: str


@dataclass(frozen=True)
class EmployeeRef:
    id: UUID
    fullname: str
    dni: str


@dataclass(frozen=True)
class PurchaseItemView:
    """A line item as recorded at purchase time."""

    product_id: UUID
    product_name: str
    quantity: int
    unit_cost: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_cost * self.quantity

    @classmethod
    def from_model(cls, item: PurchaseItemModel) -> PurchaseItemView:
        return cls(
            product_id=item.product_id,
            product_name=item.product.name,
            quantity=int(item.quantity),
            unit_cost=Decimal(item.unit_cost),
        )


@dataclass(frozen=True)
class PurchaseView:
    """A purchase with its items, detached from the session."""

    id: UUID
    number: str
    supplier: SupplierRef | None
    employee: EmployeeRef
    total: Decimal
    purchased_at: datetime
    items: tuple[PurchaseItemView, ...] = field(default_factory=tuple)

    def quantity_by_product(self) -> dict[UUID, int]:
        return {i.product_id: i.quantity for i in self.items}

    @classmethod
    def from_model(cls, purchase: PurchaseModel) -> PurchaseView:
        supplier = None
        if purchase.supplier is not None:
            supplier = SupplierRef(
                id=purchase.supplier.id,
                name=purchase.supplier.name,
                ruc=purchase.supplier.ruc,
            )
        return cls(
            id=purchase.id,
            number=purchase.number,
            supplier=supplier,
            employee=EmployeeRef(
                id=purchase.employee.id,
                fullname=purchase.employee.fullname,
                dni=purchase.employee.dni,
            ),
            total=round_money(Decimal(purchase.total)),
            purchased_at=purchase.purchased_at,
            items=tuple(PurchaseItemView.from_model(i) for i in purchase.items),
        )


@dataclass(frozen=True)
class DeletedPurchase:
    id: UUID


@dataclass(frozen=True)
class PurchasePage:
    purchases: tuple[PurchaseView, ...]
    total: int


# =============================================================================
# Listing query
# =============================================================================


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | SortDirection | None) -> SortDirection:
        """Unrecognised directions fall back to DESC."""
        if isinstance(value, SortDirection):
            return value
        if value is None:
            return cls.DESC
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.DESC


@dataclass(frozen=True)
class Pagination:
    """``limit`` None means no limit."""

    limit: int | None = None
    offset: int = 0

    def __post_init__(self):
        if self.limit is not None and (isinstance(self.limit, bool) or self.limit < 0):
            raise InvalidInputError(f"limit must be a non-negative integer, got {self.limit!r}")
        if isinstance(self.offset, bool) or self.offset < 0:
            raise InvalidInputError(f"offset must be a non-negative integer, got {self.offset!r}")


def _optional_int(value: Any, name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class ListQuery:
    """Generic listing request: paging, free-text search, sort, filters."""

    pagination: Pagination = field(default_factory=Pagination)
    search: str | None = None
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.DESC
    filters: tuple[FilterRequest, ...] = ()

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> ListQuery:
        """
        Build from loosely typed query parameters (limit, offset, search,
        sortColumn, sortDirection, filterField, filterType, filterValue).
        """
        limit = _optional_int(params.get("limit"), "limit")
        offset = _optional_int(params.get("offset"), "offset") or 0

        filters: tuple[FilterRequest, ...] = ()
        f_field = params.get("filterField")
        f_type = params.get("filterType")
        f_value = params.get("filterValue")
        if f_field and f_type and f_value not in (None, ""):
            filters = (FilterRequest.from_strings(f_field, f_type, f_value),)

        search = params.get("search")
        return cls(
            pagination=Pagination(limit=limit, offset=offset),
            search=str(search).strip() or None if search is not None else None,
            sort_column=params.get("sortColumn") or None,
            sort_direction=SortDirection.parse(params.get("sortDirection")),
            filters=filters,
        )
