"""
Query filters -- typed, closed filter variant for listings.

Responsibility:
    Translates a ``FilterRequest(field, operator, value)`` into a SQLAlchemy
    predicate for a listing, or into an explicit rejection when the
    field / operator / value combination is not valid for that listing.

Architecture position:
    Kernel > Domain.  Pure: builds SQL expressions but performs no I/O.
    Listings (PurchaseSelector, ProductCatalogService) declare one
    ``FilterBuilder`` each, naming the fields they expose.

Invariants enforced:
    - Operators come from the closed ``FilterOperator`` enum; there is no
      string-keyed operator dispatch.
    - Only declared fields can be filtered on; unknown fields are rejected.
    - ``like`` is rejected on numeric and date fields.
    - Rejections are values (``FilterOutcome.rejection``), not exceptions.
      Read-side listings drop rejected filters and log the reason; write
      paths never consult this module.

Failure modes:
    - ``InvalidInputError`` from ``FilterOperator.parse`` only when the caller
      asks for strict parsing; ``from_strings`` maps unknown operators to a
      rejected outcome instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Mapping

from sqlalchemy import ColumnElement
from sqlalchemy.orm import InstrumentedAttribute

from backoffice_kernel.exceptions import InvalidInputError


class FilterOperator(str, Enum):
    """Comparison operators accepted by listings."""

    EQ = "eq"
    LT = "lt"
    GT = "gt"
    LTE = "lte"
    GTE = "gte"
    BETWEEN = "between"
    LIKE = "like"

    @classmethod
    def parse(cls, value: str | FilterOperator) -> FilterOperator:
        """Parse an operator name (case-insensitive)."""
        if isinstance(value, FilterOperator):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidInputError(f"Unknown filter operator: {value!r}") from exc


class FieldKind(str, Enum):
    """Value domain of a filterable field."""

    DECIMAL = "decimal"
    INTEGER = "integer"
    DATE = "date"
    TEXT = "text"
    STATUS = "status"


class FilterRejection(str, Enum):
    """Why a filter request produced no predicate."""

    UNKNOWN_FIELD = "unknown_field"
    OPERATOR_NOT_SUPPORTED = "operator_not_supported"
    MALFORMED_VALUE = "malformed_value"


_ORDERING_OPERATORS = frozenset({
    FilterOperator.EQ,
    FilterOperator.LT,
    FilterOperator.GT,
    FilterOperator.LTE,
    FilterOperator.GTE,
    FilterOperator.BETWEEN,
})

_SUPPORTED_OPERATORS: dict[FieldKind, frozenset[FilterOperator]] = {
    FieldKind.DECIMAL: _ORDERING_OPERATORS,
    FieldKind.INTEGER: _ORDERING_OPERATORS,
    FieldKind.DATE: _ORDERING_OPERATORS,
    FieldKind.TEXT: frozenset({FilterOperator.EQ, FilterOperator.LIKE}),
    FieldKind.STATUS: frozenset({FilterOperator.EQ, FilterOperator.LIKE}),
}


@dataclass(frozen=True)
class FilterRequest:
    """
    One requested filter.

    ``operator`` is None when the caller supplied an operator name outside
    the closed set; such a request is always rejected.
    """

    field: str
    operator: FilterOperator | None
    value: str

    @classmethod
    def from_strings(cls, field: str, operator: str, value: Any) -> FilterRequest:
        """Build a request from loosely typed query parameters."""
        try:
            op = FilterOperator.parse(operator)
        except InvalidInputError:
            op = None
        return cls(field=str(field).strip(), operator=op, value=str(value).strip())


@dataclass(frozen=True)
class FilterField:
    """A filterable column and the kind of values it holds."""

    # A mapped attribute, or a SQL expression over one
    column: InstrumentedAttribute | ColumnElement
    kind: FieldKind
    # STATUS only: accepted keyword -> stored value
    keywords: Mapping[str, str] | None = None


@dataclass(frozen=True)
class FilterOutcome:
    """Result of building one filter: a predicate, or a rejection reason."""

    request: FilterRequest
    predicate: ColumnElement[bool] | None = None
    rejection: FilterRejection | None = None

    @property
    def applied(self) -> bool:
        return self.predicate is not None


def _parse_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite():
        raise ValueError(raw)
    return value


def _parse_integer(raw: str) -> int:
    return int(raw)


def _parse_date(raw: str) -> date:
    return date.fromisoformat(raw)


_PARSERS: dict[FieldKind, Callable[[str], Any]] = {
    FieldKind.DECIMAL: _parse_decimal,
    FieldKind.INTEGER: _parse_integer,
    FieldKind.DATE: _parse_date,
    FieldKind.TEXT: str,
}


class FilterBuilder:
    """
    Builds predicates for one listing.

    Contract:
        Constructed with the listing's filterable fields.  ``build`` never
        raises for bad input; it returns a ``FilterOutcome`` whose
        ``rejection`` says why no predicate was produced.

    Usage:
        builder = FilterBuilder({
            "cost": FilterField(Product.cost, FieldKind.DECIMAL),
            "expiration_date": FilterField(Product.expiration_date, FieldKind.DATE),
        })
        outcome = builder.build(FilterRequest.from_strings("cost", "gte", "2.5"))
        if outcome.applied:
            stmt = stmt.where(outcome.predicate)
    """

    def __init__(self, fields: Mapping[str, FilterField]):
        self._fields = dict(fields)

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self._fields)

    def build(self, request: FilterRequest) -> FilterOutcome:
        definition = self._fields.get(request.field)
        if definition is None:
            return FilterOutcome(request, rejection=FilterRejection.UNKNOWN_FIELD)

        operator = request.operator
        if operator is None or operator not in _SUPPORTED_OPERATORS[definition.kind]:
            return FilterOutcome(request, rejection=FilterRejection.OPERATOR_NOT_SUPPORTED)

        try:
            if definition.kind is FieldKind.STATUS:
                predicate = self._status_predicate(definition, request.value)
            else:
                predicate = self._predicate(definition, operator, request.value)
        except (ValueError, InvalidOperation):
            return FilterOutcome(request, rejection=FilterRejection.MALFORMED_VALUE)

        return FilterOutcome(request, predicate=predicate)

    def build_all(self, requests: tuple[FilterRequest, ...]) -> list[FilterOutcome]:
        return [self.build(r) for r in requests]

    @staticmethod
    def _status_predicate(definition: FilterField, raw: str) -> ColumnElement[bool]:
        keywords = definition.keywords or {}
        stored = keywords.get(raw.lower())
        if stored is None:
            raise ValueError(raw)
        return definition.column == stored

    @staticmethod
    def _predicate(
        definition: FilterField,
        operator: FilterOperator,
        raw: str,
    ) -> ColumnElement[bool]:
        column = definition.column

        if operator is FilterOperator.LIKE:
            if not raw:
                raise ValueError(raw)
            return column.like(f"%{raw}%")

        parse = _PARSERS[definition.kind]

        if operator is FilterOperator.BETWEEN:
            parts = [p.strip() for p in raw.split(",")]
            if len(parts) != 2:
                raise ValueError(raw)
            low, high = parse(parts[0]), parse(parts[1])
            return column.between(low, high)

        value = parse(raw)
        if operator is FilterOperator.EQ:
            return column == value
        if operator is FilterOperator.LT:
            return column < value
        if operator is FilterOperator.GT:
            return column > value
        if operator is FilterOperator.LTE:
            return column <= value
        return column >= value
