"""Fixed-scale money arithmetic.

Every amount is a ``Decimal`` with two fractional digits, rounded
half-to-even. Operands are normalized before they are combined and every
result is normalized again, so sums never carry stray precision from
intermediate values. ``None`` is treated as zero throughout.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Optional, Union

SCALE = 2
CENT = Decimal("0.01")
ROUNDING = ROUND_HALF_EVEN
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


def _to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize(amount: Optional[Number]) -> Decimal:
    """Return `amount` at money scale; None becomes 0.00."""

    return _to_decimal(amount).quantize(CENT, rounding=ROUNDING)


def money(value: Optional[Number]) -> Decimal:
    """Build a money amount from an int, string or Decimal."""

    return normalize(value)


def add(a: Optional[Number], b: Optional[Number]) -> Decimal:
    return normalize(normalize(a) + normalize(b))


def subtract(a: Optional[Number], b: Optional[Number]) -> Decimal:
    return normalize(normalize(a) - normalize(b))


def multiply(amount: Optional[Number], quantity: Optional[Number]) -> Decimal:
    """Multiply a money amount by a (usually integer) quantity."""

    return normalize(normalize(amount) * _to_decimal(quantity))


def divide(amount: Optional[Number], divisor: Optional[Number]) -> Decimal:
    """Divide a money amount, raising ArithmeticError on a zero divisor."""

    divisor_value = _to_decimal(divisor) if divisor is not None else None
    if divisor_value is None or divisor_value == 0:
        raise ArithmeticError("Cannot divide by zero or None")
    return normalize(normalize(amount) / divisor_value)


def percentage_of(amount: Optional[Number], percent: Optional[Number]) -> Decimal:
    """Return `percent` percent of `amount` (19 means 19%)."""

    return normalize(normalize(amount) * _to_decimal(percent) / HUNDRED)


def sum_amounts(amounts: Iterable[Optional[Number]]) -> Decimal:
    total = ZERO
    for amount in amounts:
        total = add(total, amount)
    return total


def is_zero(amount: Optional[Number]) -> bool:
    return amount is None or _to_decimal(amount) == 0


def is_positive(amount: Optional[Number]) -> bool:
    return amount is not None and _to_decimal(amount) > 0


def is_negative(amount: Optional[Number]) -> bool:
    return amount is not None and _to_decimal(amount) < 0
