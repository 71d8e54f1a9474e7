"""
Shared money types for request and response schemas.

Amounts are exact decimals with two fractional digits. On the wire they are
plain JSON numbers in both directions:

  - Input (MoneyInput): only int/float JSON values are accepted — strings
    and booleans are rejected — and the value is quantized to cents
    (ROUND_HALF_UP). The sign is NOT checked here; the money-movement
    engine records non-positive amounts as failed transactions.
  - Output (Money): Decimal internally, serialized as a JSON number
    (pydantic would otherwise emit a string).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

CENTS = Decimal("0.01")

# Keeps every amount, and any sum of two, well inside a BIGINT of cents
MAX_ABS_AMOUNT = Decimal("10000000000000")


def to_money(value) -> Decimal:
    """Convert an int, float, str or Decimal to a cent-quantized Decimal."""
    if not isinstance(value, Decimal):
        # str() first so 0.1 becomes Decimal("0.1"), not the binary float
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _parse_money_input(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    amount = Decimal(str(value))
    if not amount.is_finite():
        raise ValueError("must be a finite number")
    if abs(amount) >= MAX_ABS_AMOUNT:
        raise ValueError(f"must be less than {MAX_ABS_AMOUNT} in magnitude")
    return to_money(amount)


MoneyInput = Annotated[Decimal, BeforeValidator(_parse_money_input)]

Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]
