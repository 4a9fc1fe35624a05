"""ORM models.  Importing this package registers every table on Base.metadata."""

from backoffice_kernel.models.party import Customer, Employee, Supplier, User
from backoffice_kernel.models.product import Product, ProductStatus, Unit
from backoffice_kernel.models.purchase import Purchase, PurchaseItem
from backoffice_kernel.models.sale import Sale, SaleItem
from backoffice_kernel.models.sequence import SequenceCounter

__all__ = [
    "Customer",
    "Employee",
    "Supplier",
    "User",
    "Product",
    "ProductStatus",
    "Unit",
    "Purchase",
    "PurchaseItem",
    "Sale",
    "SaleItem",
    "SequenceCounter",
]
