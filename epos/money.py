"""
Money helpers.

All amounts are Decimals with two decimal places. Every derived amount is
rounded half-up to the cent as soon as it is computed, so stored totals
always equal the sum of their stored parts.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from .exceptions import ValidationError

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def quantize_money(value) -> Decimal:
    """
    Round a value to two decimal places, half-up.

    Args:
        value: Decimal, int or numeric string. Floats are converted through
            ``str`` so 12.99 stays 12.99.

    Returns:
        Decimal rounded to the cent
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, field='amount') -> Decimal:
    """Parse user input into a Decimal, raising ValidationError when it is not a number."""
    if value is None or value == '':
        raise ValidationError(f"{field} is required")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number")
    return result
