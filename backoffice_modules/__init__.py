"""
Back Office Modules.

Thin orchestration layers over the back office kernel.  Each module holds
its configuration schema, its DTOs and one service that owns its
transaction boundaries.

Modules:
- Purchasing: purchase registration with stock bookkeeping
- Catalogue: product maintenance and listings
- Reporting: sales reports
"""
