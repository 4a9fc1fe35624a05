"""
Catalogue Module (``backoffice_modules.catalogue``).

Product catalogue maintenance and queries.  Stock on hand is shown here but
owned by the purchasing module's bookkeeping.
"""

from backoffice_modules.catalogue.config import CatalogueConfig
from backoffice_modules.catalogue.models import (
    DeletedProduct,
    ProductChanges,
    ProductInput,
    ProductPage,
    ProductView,
    UnitView,
)
from backoffice_modules.catalogue.service import ProductCatalogService

__all__ = [
    "CatalogueConfig",
    "DeletedProduct",
    "ProductCatalogService",
    "ProductChanges",
    "ProductInput",
    "ProductPage",
    "ProductView",
    "UnitView",
]
