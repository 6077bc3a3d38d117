"""
Decimal helpers for prices and amounts.

The order API sends prices as strings ("12.50") and amounts as numbers or
strings depending on the endpoint. Everything is converted to Decimal once,
at the edge, and kept at full precision until it is displayed.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal("0")
CENTS = Decimal("0.01")

# Larger magnitudes cannot be quantized to cents within the default context
MAX_AMOUNT = Decimal("1000000000000")


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a price-like value to a finite Decimal.

    Returns None for None, blank strings, booleans, unparsable text,
    NaN/infinity and magnitudes of MAX_AMOUNT or more, so callers can
    choose between rejecting the input and treating it as zero.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr keeps 0.1 as 0.1 instead of the binary expansion
        result = Decimal(repr(value)) if value == value else Decimal("NaN")
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite() or abs(result) >= MAX_AMOUNT:
        return None
    return result


def to_decimal(value: Any) -> Decimal:
    """Like parse_decimal, but anything unusable counts as zero."""
    result = parse_decimal(value)
    return ZERO if result is None else result


def format_money(value: Any) -> str:
    """Render an amount with exactly two decimal places ("7.50")."""
    return str(to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP))
