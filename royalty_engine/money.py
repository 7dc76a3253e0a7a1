"""
Numeric helpers shared by all calculators.

Money is always Decimal, quantized to the currency's minimum denomination
with ROUND_HALF_UP. Raw input values pass through ``str`` before becoming
Decimal so binary float error never enters the arithmetic.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import InvalidInputError

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def quantize_money(value: Decimal) -> Decimal:
    """Round to the minimum denomination (cents) using ROUND_HALF_UP."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name: str = "value") -> Decimal:
    """Convert a raw input value (int, float, str, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be numeric, got: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInputError(f"{field_name} must be numeric, got: {value!r}") from None
    if not result.is_finite():
        raise InvalidInputError(f"{field_name} must be finite, got: {value!r}")
    return result


def to_units(value, field_name: str = "units") -> int:
    """Convert a raw unit count to int, rejecting fractional quantities."""
    amount = to_decimal(value, field_name)
    if amount != amount.to_integral_value():
        raise InvalidInputError(f"{field_name} must be a whole number of units, got: {value!r}")
    return int(amount)


def format_money(value: Decimal) -> str:
    """Fixed two-place string, e.g. Decimal('600') -> '600.00'."""
    return str(quantize_money(value))
