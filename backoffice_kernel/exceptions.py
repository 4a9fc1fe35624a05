"""
Typed Exception Hierarchy for the Back Office Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an HTTP routing layer, a CLI, a retry loop) must react to failures
by kind, not by parsing messages:

    try:
        coordinator.create(purchase_input, acting_user_id)
    except ContentionError:
        retry_later()
    except NotFoundError as e:
        api_response(status=404, code=e.code)
    except InvalidInputError as e:
        api_response(status=400, code=e.code)

Every exception has a CODE attribute (machine-readable, API-safe) and carries
structured DATA as attributes, not just a message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BackofficeError (base)
    |
    +-- NotFoundError
    |   +-- PurchaseNotFoundError
    |   +-- ProductNotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- UnitNotFoundError
    |
    +-- InvalidInputError
    |   +-- InvalidQuantityError
    |   +-- InvalidCostError
    |   +-- InvalidDateError
    |   +-- DuplicateLineItemError
    |   +-- DuplicatePurchaseNumberError
    |   +-- DuplicateSkuError
    |
    +-- ReferenceIntegrityError
    |   +-- ProductReferencedError
    |
    +-- ConcurrencyError
    |   +-- ContentionError
    |
    +-- InvariantError
        +-- InconsistentStockError
        +-- NegativeStockError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | PURCHASE_NOT_FOUND          | Purchase ID doesn't exist
                | PRODUCT_NOT_FOUND           | Product ID doesn't exist (under tx)
                | EMPLOYEE_NOT_FOUND          | User missing or has no employee
                | SUPPLIER_NOT_FOUND          | Supplier ID doesn't exist
                | UNIT_NOT_FOUND              | Unit ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Invalid input   | INVALID_QUANTITY            | Quantity not a positive integer
                | INVALID_COST                | Cost negative, non-finite, malformed
                | INVALID_DATE                | Date malformed or range inverted
                | DUPLICATE_LINE_ITEM         | Same product twice in one item set
                | DUPLICATE_PURCHASE_NUMBER   | Purchase number already in use
                | DUPLICATE_SKU               | Product sku already in use
----------------|-----------------------------|-----------------------------------------
References      | PRODUCT_REFERENCED          | Product has purchase/sale items
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONTENTION                  | Lock wait exceeded or deadlock (retry)
----------------|-----------------------------|-----------------------------------------
Invariant       | INCONSISTENT_STOCK          | Commit-time stock check failed (fatal)
                | NEGATIVE_STOCK              | Stock would go below zero at commit

===============================================================================
PROPAGATION
===============================================================================

Inside a coordinator unit of work every failure rolls the whole transaction
back and propagates unchanged.  There is no local retry.  Only
ContentionError is meant to be retried, by the caller.  InvariantError
subclasses indicate a defect and must never be swallowed.
"""


class BackofficeError(Exception):
    """
    Base exception for all back office kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BACKOFFICE_ERROR"


# Not-found exceptions


class NotFoundError(BackofficeError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class PurchaseNotFoundError(NotFoundError):
    """Purchase with given ID was not found."""

    code: str = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: str):
        self.purchase_id = str(purchase_id)
        super().__init__(f"Purchase not found: {purchase_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = str(product_id)
        super().__init__(f"Product not found: {product_id}")


class EmployeeNotFoundError(NotFoundError):
    """No employee could be resolved for the acting user."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, user_id: str, reason: str = "user has no employee"):
        self.user_id = str(user_id)
        self.reason = reason
        super().__init__(f"Employee not found for user {user_id}: {reason}")


class SupplierNotFoundError(NotFoundError):
    """Supplier with given ID was not found."""

    code: str = "SUPPLIER_NOT_FOUND"

    def __init__(self, supplier_id: str):
        self.supplier_id = str(supplier_id)
        super().__init__(f"Supplier not found: {supplier_id}")


class UnitNotFoundError(NotFoundError):
    """Unit of measure with given ID was not found."""

    code: str = "UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        self.unit_id = str(unit_id)
        super().__init__(f"Unit not found: {unit_id}")


# Input validation exceptions


class InvalidInputError(BackofficeError):
    """Base exception for malformed caller input."""

    code: str = "INVALID_INPUT"


class InvalidQuantityError(InvalidInputError):
    """Line item quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, product_id: str | None = None):
        self.quantity = repr(quantity)
        self.product_id = str(product_id) if product_id is not None else None
        super().__init__(
            f"Quantity must be a positive integer, got {quantity!r}"
            + (f" for product {product_id}" if product_id is not None else "")
        )


class InvalidCostError(InvalidInputError):
    """Unit cost (or price) is negative, non-finite or not a number."""

    code: str = "INVALID_COST"

    def __init__(self, value: object, field: str = "unit_cost"):
        self.value = repr(value)
        self.field = field
        super().__init__(
            f"{field} must be a non-negative decimal, got {value!r}"
        )


class InvalidDateError(InvalidInputError):
    """A date is malformed, or a date range is inverted."""

    code: str = "INVALID_DATE"

    def __init__(self, value: object, field: str = "date", reason: str = "malformed"):
        self.value = repr(value)
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field} ({reason}): {value!r}")


class DuplicateLineItemError(InvalidInputError):
    """The same product appears more than once in one item set."""

    code: str = "DUPLICATE_LINE_ITEM"

    def __init__(self, product_id: str):
        self.product_id = str(product_id)
        super().__init__(
            f"Product {product_id} appears more than once in the item set"
        )


class DuplicatePurchaseNumberError(InvalidInputError):
    """Purchase number is already used by another purchase."""

    code: str = "DUPLICATE_PURCHASE_NUMBER"

    def __init__(self, number: str):
        self.number = number
        super().__init__(f"Purchase number already in use: {number}")


class DuplicateSkuError(InvalidInputError):
    """Product sku is already used by another product."""

    code: str = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"Product sku already in use: {sku}")


class StockOutOfRangeError(InvalidInputError):
    """Applying a delta would take a product's stock outside the column range."""

    code: str = "STOCK_OUT_OF_RANGE"

    def __init__(self, product_id: str, stock: int, delta: int):
        self.product_id = str(product_id)
        self.stock = stock
        self.delta = delta
        super().__init__(
            f"Stock for product {product_id} is {stock}; "
            f"adding {delta} would overflow"
        )


# Referential exceptions


class ReferenceIntegrityError(BackofficeError):
    """Base exception for operations refused because of existing references."""

    code: str = "REFERENCE_INTEGRITY"


class ProductReferencedError(ReferenceIntegrityError):
    """Product cannot be deleted while purchase or sale items reference it."""

    code: str = "PRODUCT_REFERENCED"

    def __init__(self, product_id: str, purchase_items: int, sale_items: int):
        self.product_id = str(product_id)
        self.purchase_items = purchase_items
        self.sale_items = sale_items
        super().__init__(
            f"Product {product_id} is referenced by {purchase_items} purchase "
            f"item(s) and {sale_items} sale item(s)"
        )


# Concurrency exceptions


class ConcurrencyError(BackofficeError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ContentionError(ConcurrencyError):
    """
    A row lock could not be acquired within the configured timeout, or the
    database aborted the transaction to break a deadlock.

    The whole unit of work was rolled back.  Safe to retry.
    """

    code: str = "CONTENTION"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Lock contention during {operation}; transaction rolled back"
            + (f": {detail}" if detail else "")
        )


# Invariant exceptions


class InvariantError(BackofficeError):
    """Base exception for invariant violations caught before commit."""

    code: str = "INVARIANT_VIOLATION"


class InconsistentStockError(InvariantError):
    """
    Commit-time stock verification failed: a product's stock does not equal
    the baseline observed in this transaction plus the deltas applied.
    """

    code: str = "INCONSISTENT_STOCK"

    def __init__(self, product_id: str, expected: int, actual: int):
        self.product_id = str(product_id)
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Stock for product {product_id} is {actual}, expected {expected}"
        )


class NegativeStockError(InvariantError):
    """Stock for a product would be negative at commit."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, product_id: str, stock: int):
        self.product_id = str(product_id)
        self.stock = stock
        super().__init__(
            f"Stock for product {product_id} would be negative: {stock}"
        )
