"""
Module: backoffice_kernel.db.types
Responsibility: Conversion helpers for money, stock quantities and dates.
    Centralizes precision, rounding and input coercion so that every DTO
    and service applies identical rules.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Monetary columns are Numeric(38, 9) (see base.py).
    - round_money() is the ONLY sanctioned rounding function for totals.
    - Stock quantities are integers that fit a BIGINT column; to_quantity()
      rejects bools, every float, non-positive values and values above
      BIGINT_MAX.

Failure modes:
    - InvalidCostError from to_money() on malformed, negative or non-finite input.
    - InvalidQuantityError from to_quantity() on anything but a positive integer.
    - InvalidDateError from to_date() on anything but a date or ISO-8601 string.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from backoffice_kernel.exceptions import (
    InvalidCostError,
    InvalidDateError,
    InvalidQuantityError,
)


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Range of the BigInteger stock and quantity columns.
BIGINT_MAX = 2**63 - 1
BIGINT_MIN = -(2**63)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for monetary totals.

    Example:
        round_money(Decimal("10.125")) -> Decimal("10.13")
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)


def to_money(value: object, field: str = "unit_cost") -> Decimal:
    """
    Coerce caller input to a non-negative, finite Decimal.

    Accepts Decimal, int and str.  Floats are accepted through their string
    representation so that 2.1 becomes Decimal("2.1"), not its binary
    approximation.

    Raises:
        InvalidCostError: If the value is a bool, malformed, negative,
            NaN or infinite.
    """
    if isinstance(value, bool):
        raise InvalidCostError(value, field)
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, str)):
            amount = Decimal(str(value).strip())
        elif isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            raise InvalidCostError(value, field)
    except InvalidOperation as exc:
        raise InvalidCostError(value, field) from exc

    if not amount.is_finite() or amount < 0:
        raise InvalidCostError(value, field)
    return amount


def to_quantity(value: object, product_id: object | None = None) -> int:
    """
    Coerce caller input to a positive integer quantity.

    Accepts int, integral Decimal, and digit strings.  Floats are rejected
    outright, integral ones such as 3.0 included.

    Raises:
        InvalidQuantityError: On bools, floats, fractional values,
            non-numeric strings, zero, negative values and values above
            BIGINT_MAX.
    """
    pid = str(product_id) if product_id is not None else None
    if isinstance(value, bool):
        raise InvalidQuantityError(value, pid)
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise InvalidQuantityError(value, pid)
        quantity = int(value)
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        quantity = int(value.strip())
    else:
        raise InvalidQuantityError(value, pid)

    if quantity <= 0 or quantity > BIGINT_MAX:
        raise InvalidQuantityError(value, pid)
    return quantity


def to_date(value: object, field: str = "date") -> date:
    """
    Coerce caller input to a calendar date.

    Accepts date, datetime (its date part) and ISO-8601 strings, with or
    without a time part ("2025-05-01", "2025-05-01T10:30:00").

    Raises:
        InvalidDateError: On anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError as exc:
            raise InvalidDateError(value, field) from exc
    raise InvalidDateError(value, field)
