"""Services for the back office kernel (write side)."""

from backoffice_kernel.services.employee_resolver import (
    EmployeeResolver,
    UserEmployeeResolver,
)
from backoffice_kernel.services.purchase_store import (
    HeaderChanges,
    PurchaseHeaderData,
    PurchaseStore,
)
from backoffice_kernel.services.sequence_service import SequenceService
from backoffice_kernel.services.stock_ledger import StockLedger

__all__ = [
    "EmployeeResolver",
    "HeaderChanges",
    "PurchaseHeaderData",
    "PurchaseStore",
    "SequenceService",
    "StockLedger",
    "UserEmployeeResolver",
]
