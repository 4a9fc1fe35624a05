"""
Module: backoffice_kernel.selectors.listing
Responsibility: Shared mechanics for paged listings: turning filter
    requests into predicates (dropping and logging rejected ones), resolving
    a whitelisted sort column, and applying limit/offset.
Architecture position: Kernel > Selectors.  Used by PurchaseSelector and by
    module-level listings (product catalogue).
"""

from typing import Mapping

from sqlalchemy import ColumnElement, Select

from backoffice_kernel.domain.dtos import Pagination, SortDirection
from backoffice_kernel.domain.filters import FilterBuilder, FilterRequest
from backoffice_kernel.logging_config import get_logger

logger = get_logger("selectors.listing")


def filter_predicates(
    listing: str,
    builder: FilterBuilder,
    requests: tuple[FilterRequest, ...],
) -> list[ColumnElement[bool]]:
    """
    Predicates for every applicable request.  Rejected requests are left
    out of the query and logged.
    """
    predicates = []
    for outcome in builder.build_all(requests):
        if outcome.applied:
            predicates.append(outcome.predicate)
            continue
        logger.warning(
            "filter_rejected",
            extra={
                "listing": listing,
                "field": outcome.request.field,
                "operator": (
                    outcome.request.operator.value
                    if outcome.request.operator is not None else None
                ),
                "reason": outcome.rejection.value,
            },
        )
    return predicates


def sort_clauses(
    listing: str,
    sortable: Mapping[str, ColumnElement],
    column: str | None,
    direction: SortDirection,
    default: tuple[ColumnElement, ...],
) -> tuple[ColumnElement, ...]:
    """
    ORDER BY clauses for a requested sort.  Columns outside ``sortable``
    fall back to ``default``.
    """
    if column is None:
        return default
    target = sortable.get(column)
    if target is None:
        logger.warning(
            "sort_column_rejected",
            extra={"listing": listing, "sort_column": column},
        )
        return default
    ordered = target.asc() if direction is SortDirection.ASC else target.desc()
    # Stable paging across equal sort keys
    return (ordered, *default)


def paginate(stmt: Select, pagination: Pagination) -> Select:
    if pagination.offset:
        stmt = stmt.offset(pagination.offset)
    if pagination.limit is not None:
        stmt = stmt.limit(pagination.limit)
    return stmt
