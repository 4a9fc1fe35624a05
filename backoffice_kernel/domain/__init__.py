"""
Pure domain layer.

Data transfer objects, the typed query filter builder and the clock
abstraction.  Nothing here opens a session or performs I/O.
"""

from backoffice_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from backoffice_kernel.domain.dtos import (
    DeletedPurchase,
    EmployeeRef,
    ListQuery,
    Pagination,
    PurchaseChanges,
    PurchaseInput,
    PurchaseItemInput,
    PurchaseItemView,
    PurchasePage,
    PurchaseView,
    SortDirection,
    SupplierRef,
)
from backoffice_kernel.domain.filters import (
    FieldKind,
    FilterBuilder,
    FilterField,
    FilterOperator,
    FilterOutcome,
    FilterRejection,
    FilterRequest,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "DeletedPurchase",
    "EmployeeRef",
    "ListQuery",
    "Pagination",
    "PurchaseChanges",
    "PurchaseInput",
    "PurchaseItemInput",
    "PurchaseItemView",
    "PurchasePage",
    "PurchaseView",
    "SortDirection",
    "SupplierRef",
    "FieldKind",
    "FilterBuilder",
    "FilterField",
    "FilterOperator",
    "FilterOutcome",
    "FilterRejection",
    "FilterRequest",
]
