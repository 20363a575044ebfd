"""
Fixed-point money helpers.

Every amount in the system is a Decimal rounded "half away from zero"
(ROUND_HALF_UP in Decimal terms, which is symmetric around zero):

    round2(Decimal("2.675"))  -> 2.68
    round2(Decimal("-2.675")) -> -2.68

Quantities use 3 decimals, allocation intermediates use 4.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

CENT = Decimal("0.01")
ZERO = Decimal("0")

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Numeric]) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal. None becomes zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def _quantize(value: Numeric, places: int) -> Decimal:
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round2(value: Numeric) -> Decimal:
    """Round to cents."""
    return _quantize(value, 2)


def round3(value: Numeric) -> Decimal:
    """Round a quantity to 3 decimals."""
    return _quantize(value, 3)


def round4(value: Numeric) -> Decimal:
    """Round an allocation intermediate to 4 decimals."""
    return _quantize(value, 4)


def round2_optional(value: Optional[Numeric]) -> Optional[Decimal]:
    """round2 that passes None through."""
    return None if value is None else round2(value)


def equals_within(a: Numeric, b: Numeric, tolerance: Numeric = Decimal("0.02")) -> bool:
    """True when |a - b| <= tolerance."""
    return abs(to_decimal(a) - to_decimal(b)) <= to_decimal(tolerance)
