"""
Purchasing Module (``backoffice_modules.purchasing``).

Responsibility
--------------
Purchase registration with stock bookkeeping: the ``PurchaseCoordinator``
and its configuration schema.  Persistence, locking and stock mutation are
delegated to ``backoffice_kernel`` services; this package only orchestrates
them into atomic units of work.
"""

from backoffice_modules.purchasing.config import PurchasingConfig
from backoffice_modules.purchasing.service import PurchaseCoordinator

__all__ = [
    "PurchaseCoordinator",
    "PurchasingConfig",
]
