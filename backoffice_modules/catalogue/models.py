"""
Catalogue Domain Models (``backoffice_modules.catalogue.models``).

Frozen inputs and views for the product catalogue.  Inputs validate on
construction; views are detached from the session and never expose ORM
instances.

Invariants
----------
- ``expiration_date`` is only kept when ``has_expiration`` is true.
- Money fields are non-negative Decimals, stock fields non-negative ints.
- ``ProductChanges`` has no stock field: stock is changed by purchases only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from backoffice_kernel.db.types import to_date, to_money
from backoffice_kernel.domain.dtos import coerce_uuid
from backoffice_kernel.exceptions import InvalidInputError
from backoffice_kernel.models.product import Product, ProductStatus, Unit


def _required_text(value: Any, name: str, max_length: int) -> str:
    text = str(value).strip() if value is not None else ""
    if not text or len(text) > max_length:
        raise InvalidInputError(f"{name} must be 1-{max_length} characters, got {value!r}")
    return text


def _non_negative_int(value: Any, name: str) -> int:
    message = f"{name} must be a non-negative integer, got {value!r}"
    if isinstance(value, bool):
        raise InvalidInputError(message)
    try:
        number = int(value)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise InvalidInputError(message) from exc
    # Reject silent truncation of 2.5 -> 2
    if isinstance(value, (float, Decimal)) and number != value:
        raise InvalidInputError(message)
    if number < 0:
        raise InvalidInputError(message)
    return number


def _status(value: Any) -> str:
    if isinstance(value, ProductStatus):
        return value.value
    try:
        return ProductStatus(str(value).strip().lower()).value
    except ValueError as exc:
        raise InvalidInputError(f"Unknown product status: {value!r}") from exc


def _pick(data: Mapping[str, Any], snake: str, camel: str) -> Any:
    return data[snake] if snake in data else data.get(camel)


@dataclass(frozen=True)
class ProductInput:
    """A new catalogue product.  ``stock`` is the initial stock on hand."""

    name: str
    sku: str
    cost: Decimal
    price: Decimal
    description: str | None = None
    stock: int = 0
    stock_min: int = 0
    has_expiration: bool = False
    expiration_date: date | None = None
    status: str = ProductStatus.ACTIVE.value
    unit_id: UUID | None = None

    def __post_init__(self):
        object.__setattr__(self, "name", _required_text(self.name, "name", 255))
        object.__setattr__(self, "sku", _required_text(self.sku, "sku", 50))
        object.__setattr__(self, "cost", to_money(self.cost, "cost"))
        object.__setattr__(self, "price", to_money(self.price, "price"))
        object.__setattr__(self, "stock", _non_negative_int(self.stock, "stock"))
        object.__setattr__(self, "stock_min", _non_negative_int(self.stock_min, "stock_min"))
        object.__setattr__(self, "status", _status(self.status))
        object.__setattr__(self, "description", self.description or None)
        object.__setattr__(self, "has_expiration", bool(self.has_expiration))
        if self.has_expiration and self.expiration_date:
            object.__setattr__(
                self, "expiration_date", to_date(self.expiration_date, "expiration_date"),
            )
        else:
            object.__setattr__(self, "expiration_date", None)
        if self.unit_id is not None:
            object.__setattr__(self, "unit_id", coerce_uuid(self.unit_id, "unit_id"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProductInput:
        """Accepts snake_case or camelCase keys."""
        fields = {
            "name": data.get("name"),
            "sku": data.get("sku"),
            "cost": data.get("cost"),
            "price": data.get("price"),
            "description": data.get("description"),
            "has_expiration": _pick(data, "has_expiration", "hasExpiration") or False,
            "expiration_date": _pick(data, "expiration_date", "expirationDate"),
            "unit_id": _pick(data, "unit_id", "unitId"),
        }
        for snake, camel in (("stock", "stock"), ("stock_min", "stockMin"), ("status", "status")):
            value = _pick(data, snake, camel)
            if value is not None:
                fields[snake] = value
        return cls(**fields)


@dataclass(frozen=True)
class ProductChanges:
    """
    Changes to a catalogue product.  None leaves a field unchanged.

    ``has_expiration`` False clears the expiration date.  With
    ``clear_expiration_date`` the date is removed while the product keeps
    tracking expiration.
    """

    name: str | None = None
    sku: str | None = None
    description: str | None = None
    cost: Decimal | None = None
    price: Decimal | None = None
    stock_min: int | None = None
    has_expiration: bool | None = None
    expiration_date: date | None = None
    clear_expiration_date: bool = False
    status: str | None = None
    unit_id: UUID | None = None

    def __post_init__(self):
        if self.name is not None:
            object.__setattr__(self, "name", _required_text(self.name, "name", 255))
        if self.sku is not None:
            object.__setattr__(self, "sku", _required_text(self.sku, "sku", 50))
        if self.cost is not None:
            object.__setattr__(self, "cost", to_money(self.cost, "cost"))
        if self.price is not None:
            object.__setattr__(self, "price", to_money(self.price, "price"))
        if self.stock_min is not None:
            object.__setattr__(
                self, "stock_min", _non_negative_int(self.stock_min, "stock_min"),
            )
        if self.status is not None:
            object.__setattr__(self, "status", _status(self.status))
        if self.expiration_date is not None:
            object.__setattr__(
                self, "expiration_date", to_date(self.expiration_date, "expiration_date"),
            )
        if self.unit_id is not None:
            object.__setattr__(self, "unit_id", coerce_uuid(self.unit_id, "unit_id"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProductChanges:
        """
        Accepts snake_case or camelCase keys.  An explicitly empty
        expiration date ("" or null) means "clear it".
        """
        has_exp_key = "expiration_date" in data or "expirationDate" in data
        raw_expiration = _pick(data, "expiration_date", "expirationDate")
        return cls(
            name=data.get("name"),
            sku=data.get("sku"),
            description=data.get("description"),
            cost=data.get("cost"),
            price=data.get("price"),
            stock_min=_pick(data, "stock_min", "stockMin"),
            has_expiration=_pick(data, "has_expiration", "hasExpiration"),
            expiration_date=raw_expiration or None,
            clear_expiration_date=has_exp_key and not raw_expiration,
            status=data.get("status"),
            unit_id=_pick(data, "unit_id", "unitId"),
        )


@dataclass(frozen=True)
class UnitView:
    id: UUID
    name: str
    symbol: str

    @classmethod
    def from_model(cls, unit: Unit) -> UnitView:
        return cls(id=unit.id, name=unit.name, symbol=unit.symbol)


@dataclass(frozen=True)
class ProductView:
    """A catalogue product, detached from the session."""

    id: UUID
    name: str
    sku: str
    description: str | None
    stock: int
    stock_min: int
    cost: Decimal
    price: Decimal
    has_expiration: bool
    expiration_date: date | None
    status: str
    unit: UnitView | None

    @property
    def below_minimum(self) -> bool:
        return self.stock < self.stock_min

    @classmethod
    def from_model(cls, product: Product) -> ProductView:
        return cls(
            id=product.id,
            name=product.name,
            sku=product.sku,
            description=product.description,
            stock=int(product.stock),
            stock_min=int(product.stock_min),
            cost=Decimal(product.cost),
            price=Decimal(product.price),
            has_expiration=bool(product.has_expiration),
            expiration_date=product.expiration_date,
            status=product.status,
            unit=UnitView.from_model(product.unit) if product.unit is not None else None,
        )


@dataclass(frozen=True)
class ProductPage:
    products: tuple[ProductView, ...]
    total: int


@dataclass(frozen=True)
class DeletedProduct:
    id: UUID
