from __future__ import annotations

from typing import Any

from flask import request

from .engine.errors import ValidationError


# Maximum price: Rs. 9,999,999.99 (999,999,999 paise)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


def json_body() -> dict[str, Any]:
    """Request JSON object; a missing body is {}, anything but an object is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def enforce_price_limit(unit_price_cents: int, field: str = "unit_price_cents") -> int:
    if unit_price_cents > MAX_PRICE_CENTS:
        raise ValidationError(
            f"{field} cannot exceed {MAX_PRICE_CENTS}",
            {"field": field, "max": MAX_PRICE_CENTS},
        )
    return unit_price_cents
