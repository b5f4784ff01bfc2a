"""Money helpers shared by the cart, discount and order services."""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

CENT = Decimal('0.01')


def to_money(value: Any) -> Decimal:
    """Coerce a number/str to a Decimal rounded to cents (HALF_UP)."""
    if value is None:
        return Decimal('0.00')
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid monetary amount: {value!r}')


def from_minor_units(amount: int) -> Decimal:
    """Gateway amounts are expressed in the smallest currency unit (paise)."""
    return to_money(Decimal(amount) / 100)


def money_float(value: Optional[Decimal]) -> Optional[float]:
    """JSON friendly representation of a Decimal amount."""
    if value is None:
        return None
    return float(value)
