"""
Whole/decimal amount conversion.

The exchange transmits monetary values as integers scaled by 10^8 ("whole"
amounts). Conversions go through Decimal so they are exact across the full
int64 range.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

AMOUNT_SCALE = 100000000
AMOUNT_EXPONENT = 8

# AUD prices may only carry two decimal places
AUD_PRICE_STEP = 1000000

DecimalInput = Union[Decimal, float, int, str]


def whole_to_decimal(whole: int) -> Decimal:
    """Convert a whole (x 10^8) amount to its decimal value."""
    if isinstance(whole, bool) or not isinstance(whole, int):
        raise TypeError(f"Whole amount must be an int, got: {whole!r}")
    return Decimal(whole).scaleb(-AMOUNT_EXPONENT)


def decimal_to_whole(amount: DecimalInput) -> int:
    """
    Convert a decimal amount to whole (x 10^8) units.

    Floats are converted via their shortest repr, so 0.1 becomes exactly
    10000000. Digits beyond 10^-8 are rounded half-up.
    """
    if isinstance(amount, bool):
        raise TypeError(f"Invalid amount: {amount!r}")
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"Invalid amount format: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got: {amount!r}")
    return int(value.scaleb(AMOUNT_EXPONENT).to_integral_value(rounding=ROUND_HALF_UP))


def has_two_decimal_places(whole: int) -> bool:
    """True if a whole amount has no precision past the second decimal place."""
    return whole % AUD_PRICE_STEP == 0
