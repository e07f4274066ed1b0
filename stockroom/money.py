from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError


def format_cents(cents: int | None) -> str | None:
    """1500 -> "15.00"."""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))


def parse_amount(value, field: str = "price") -> int:
    """
    "15.00" / 15 / 15.5 -> cents.

    Floats go through str() so 19.99 stays 1999. More than two decimal
    places is rejected rather than rounded.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{field} must be a decimal amount")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a decimal amount")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than 2 decimal places")
    return int(amount * 100)
