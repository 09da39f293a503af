# Overview: Exact, non-negative helpers for money amounts and unit counts.

"""
Money & quantity primitives.

All money is integer minor units (cents/paise). Nothing here uses floats:
a total is ``unit_price_cents * quantity`` exactly, and the only division
(percentage rates) truncates toward zero, so totals are truncated to the cent
and a paid amount is never rounded on its own.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN

from .errors import InvalidQuantity, NegativeBalance, ValidationError

BPS_DENOMINATOR = 10_000
CURRENCY_PREFIX = "Rs."

_WHOLE_NUMBER = re.compile(r"-?\d+", re.ASCII)


def require_quantity(value, *, field: str = "quantity", allow_zero: bool = False) -> int:
    """
    Validate a unit count and return it as int.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals,
    scientific notation and negatives with InvalidQuantity. Zero is rejected
    unless ``allow_zero`` is set (restock and product creation allow it).
    """
    if isinstance(value, bool) or value is None:
        raise InvalidQuantity(f"{field} must be an integer", {"field": field, "value": value})

    if isinstance(value, str):
        stripped = value.strip()
        if not _WHOLE_NUMBER.fullmatch(stripped):
            raise InvalidQuantity(f"{field} must be a whole number", {"field": field, "value": value})
        value = int(stripped)

    if not isinstance(value, int):
        raise InvalidQuantity(f"{field} must be a whole number", {"field": field, "value": str(value)})

    if value < 0 or (value == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise InvalidQuantity(f"{field} must be {bound}", {"field": field, "value": value})

    return value


def require_amount(value, *, field: str = "amount") -> int:
    """Validate a money amount in cents; negatives raise NegativeBalance."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer number of cents", {"field": field})
    if value < 0:
        raise NegativeBalance(f"{field} cannot be negative", {"field": field, "value": value})
    return value


def parse_money(text) -> int:
    """
    Parse a major-unit amount ("45", "45.5", "1,250.999") into cents.

    Sub-cent digits are truncated, never rounded up.
    """
    if isinstance(text, bool):
        raise ValidationError("amount must be a decimal number")
    try:
        amount = Decimal(str(text).replace(",", "").strip())
    except InvalidOperation:
        raise ValidationError(f"invalid amount: {text!r}")
    if not amount.is_finite():
        raise ValidationError(f"invalid amount: {text!r}")
    if amount < 0:
        raise NegativeBalance("amount cannot be negative", {"value": str(text)})
    cents = (amount * 100).quantize(Decimal("1"), rounding=ROUND_DOWN)
    return int(cents)


def subtract(minuend: int, subtrahend: int, *, field: str = "balance") -> int:
    """Subtract two amounts; a negative result raises NegativeBalance."""
    result = require_amount(minuend, field=field) - require_amount(subtrahend, field=field)
    if result < 0:
        raise NegativeBalance(
            f"{field} would go negative",
            {"minuend": minuend, "subtrahend": subtrahend},
        )
    return result


def line_total(unit_price_cents: int, quantity: int) -> int:
    return require_amount(unit_price_cents, field="unit_price_cents") * require_quantity(quantity)


def apply_rate(amount_cents: int, rate_bps: int) -> int:
    """Percentage of an amount in basis points (1800 = 18%), truncated to the cent."""
    amount_cents = require_amount(amount_cents)
    rate_bps = require_amount(rate_bps, field="rate_bps")
    return (amount_cents * rate_bps) // BPS_DENOMINATOR


def format_money(amount_cents: int) -> str:
    sign = "-" if amount_cents < 0 else ""
    major, minor = divmod(abs(amount_cents), 100)
    return f"{sign}{CURRENCY_PREFIX} {major:,}.{minor:02d}"
