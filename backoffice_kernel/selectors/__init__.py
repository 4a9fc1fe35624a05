"""Selectors for the back office kernel (read side)."""

from backoffice_kernel.selectors.purchase_selector import PurchaseSelector

__all__ = ["PurchaseSelector"]
