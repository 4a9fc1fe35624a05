"""Typed exception hierarchy (backoffice_kernel/exceptions.py)."""

import inspect

import pytest

import backoffice_kernel.exceptions as exceptions_module
from backoffice_kernel.exceptions import (
    BackofficeError,
    ContentionError,
    DuplicatePurchaseNumberError,
    DuplicateSkuError,
    EmployeeNotFoundError,
    InconsistentStockError,
    InvalidInputError,
    InvariantError,
    NegativeStockError,
    NotFoundError,
    ProductNotFoundError,
    ProductReferencedError,
    PurchaseNotFoundError,
    StockOutOfRangeError,
    SupplierNotFoundError,
    UnitNotFoundError,
)


def _all_exception_classes():
    return [
        cls for _, cls in inspect.getmembers(exceptions_module, inspect.isclass)
        if issubclass(cls, BackofficeError)
    ]


def test_codes_are_unique():
    codes = [cls.code for cls in _all_exception_classes()]
    assert len(codes) == len(set(codes))


def test_every_subclass_overrides_code():
    for cls in _all_exception_classes():
        if cls is not BackofficeError:
            assert cls.code != BackofficeError.code, cls.__name__


@pytest.mark.parametrize("cls", [
    PurchaseNotFoundError, ProductNotFoundError, SupplierNotFoundError, UnitNotFoundError,
])
def test_not_found_family(cls):
    error = cls("abc")
    assert isinstance(error, NotFoundError)
    assert "abc" in str(error)


def test_duplicates_are_input_errors():
    assert issubclass(DuplicatePurchaseNumberError, InvalidInputError)
    assert issubclass(DuplicateSkuError, InvalidInputError)


def test_stock_out_of_range_is_input_error():
    error = StockOutOfRangeError("p-1", stock=10, delta=5)
    assert isinstance(error, InvalidInputError)
    assert (error.stock, error.delta) == (10, 5)


def test_stock_errors_are_invariant_errors():
    assert issubclass(InconsistentStockError, InvariantError)
    assert issubclass(NegativeStockError, InvariantError)


def test_structured_data():
    error = InconsistentStockError("p-1", expected=13, actual=12)
    assert (error.product_id, error.expected, error.actual) == ("p-1", 13, 12)

    referenced = ProductReferencedError("p-2", purchase_items=2, sale_items=0)
    assert referenced.purchase_items == 2
    assert referenced.code == "PRODUCT_REFERENCED"


def test_employee_not_found_reason():
    assert EmployeeNotFoundError("u-1").reason == "user has no employee"
    assert EmployeeNotFoundError("u-1", reason="user does not exist").reason == "user does not exist"


def test_contention_detail_in_message():
    error = ContentionError("create", "lock timeout")
    assert error.operation == "create"
    assert "lock timeout" in str(error)
