from decimal import Decimal

from flask import request

from services.errors import ValidationError
from services.inventory_service import to_decimal


def json_body() -> dict:
    """The request's JSON object, or {} when there is no (parseable) body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def text_field(data: dict, key: str):
    """Stripped string value of ``key``; None when missing or blank."""
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


CENTS = Decimal("0.01")
# matches Numeric(10, 2) on price and promo value columns
AMOUNT_MAX = Decimal("99999999.99")


def amount_field(data: dict, key: str) -> Decimal:
    """Non-negative money value of ``key`` with at most two decimal places."""
    amount = to_decimal(data.get(key), key)
    if amount < 0:
        raise ValidationError(f"{key} cannot be negative")
    if amount > AMOUNT_MAX:
        raise ValidationError(f"{key} must be at most {AMOUNT_MAX}")
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{key} allows at most 2 decimal places")
    return amount.quantize(CENTS)
