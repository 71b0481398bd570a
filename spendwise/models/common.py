from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

TWO_PLACES = Decimal("0.01")
# Numeric(10, 2) holds at most 8 integer digits.
MAX_AMOUNT = Decimal("100000000")

# Decimal internally and at the storage boundary, plain number in JSON responses.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base model exposing camelCase field names over the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def to_money(value: Any) -> Decimal:
    """Quantize a stored or computed amount to 2 fractional digits."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def parse_amount(value: Any) -> Decimal:
    """
    Validate a user supplied amount: a non-negative decimal with at most
    2 fractional digits. Returns the amount quantized to 2 places.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("Amount is required")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("Amount must be a decimal number")
    if not amount.is_finite():
        raise ValueError("Amount must be a decimal number")
    if amount < 0:
        raise ValueError("Amount must not be negative")
    if amount >= MAX_AMOUNT:
        raise ValueError("Amount must be less than 100000000")
    if amount.as_tuple().exponent < -2:
        raise ValueError("Amount must have at most 2 decimal places")
    return amount.quantize(TWO_PLACES)
