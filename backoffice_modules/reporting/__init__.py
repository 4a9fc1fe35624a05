"""
Reporting Module (``backoffice_modules.reporting``).

Read-only reports over sales recorded by the point-of-sale subsystem.
"""

from backoffice_modules.reporting.models import (
    CustomerRef,
    SaleItemView,
    SalesReport,
    SaleView,
)
from backoffice_modules.reporting.service import SalesReportService

__all__ = [
    "CustomerRef",
    "SaleItemView",
    "SaleView",
    "SalesReport",
    "SalesReportService",
]
