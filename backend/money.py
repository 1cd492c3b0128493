"""Decimal helpers. Stores may hand amounts back as int, float, str or Decimal."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce a store or request value to a 2-place Decimal. None counts as zero."""
    if value is None or value == "":
        return ZERO
    try:
        # str() first so floats keep their printed value instead of binary noise
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e


def total(values) -> Decimal:
    return sum((to_decimal(v) for v in values), ZERO)
