"""
Back Office Kernel

The transactional core of the inventory / point-of-sale back office:
- Stock ledger with signed, row-locked stock adjustments
- Purchase record store (headers + line items)
- Typed query filters for listings
- Structured logging and a typed exception hierarchy
"""

__version__ = "0.1.0"
