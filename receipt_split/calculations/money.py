"""
Money / Quantity Normalizer

Converts whatever the OCR model or a form field hands us into Decimal.

DESIGN DECISION: Absence of data is valid input, not an error.
Every function here is total: currency symbols, stray whitespace,
doubled decimal points, None and garbage all produce a number
(0 when nothing usable is left). Callers never need try/except.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any


CENT = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")

_NOT_NUMERIC = re.compile(r"[^\d.]")


class ValueKind(str, Enum):
    """What a value represents, which decides how it is cleaned."""
    MONEY = "money"        # 2 decimal places, unsigned text
    QUANTITY = "quantity"  # unlimited places, unsigned text
    RATE = "rate"          # unlimited places, leading '-' allowed


def round_money(value: Decimal) -> Decimal:
    """
    Round to cents, halves away from zero.

    Amounts with more digits than the context precision can hold
    (e.g. a price derived from an absurd OCR quantity) become 0.
    """
    try:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def _clean_text(text: str, signed: bool) -> str:
    negative = False
    if signed:
        # A '-' counts only when it precedes the first digit
        head = re.split(r"\d", text, maxsplit=1)[0]
        negative = "-" in head

    cleaned = _NOT_NUMERIC.sub("", text)
    if cleaned.count(".") > 1:
        first, *rest = cleaned.split(".")
        cleaned = f"{first}.{''.join(rest)}"

    if not any(ch.isdigit() for ch in cleaned):
        return ""
    return f"-{cleaned}" if negative else cleaned


def to_decimal(value: Any, kind: ValueKind = ValueKind.MONEY) -> Decimal:
    """
    Convert a heterogeneous numeric value to Decimal.

    Args:
        value: str, int, float, Decimal or None
        kind: MONEY rounds to cents; QUANTITY and RATE keep every digit.
              Only RATE text keeps a leading minus sign.

    Returns:
        The canonical Decimal, or 0 when nothing parseable is present.
    """
    if value is None or isinstance(value, bool):
        return ZERO

    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return ZERO
    elif isinstance(value, str):
        text = _clean_text(value, signed=kind == ValueKind.RATE)
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not number.is_finite():
        return ZERO

    if kind == ValueKind.MONEY:
        return round_money(number)
    return number


def to_money(value: Any) -> Decimal:
    return to_decimal(value, ValueKind.MONEY)


def to_quantity(value: Any) -> Decimal:
    return to_decimal(value, ValueKind.QUANTITY)


def to_rate(value: Any) -> Decimal:
    return to_decimal(value, ValueKind.RATE)


def effective_quantity(quantity: Any) -> Decimal:
    """Quantity safe to multiply and divide by: missing or <= 0 becomes 1."""
    q = quantity if isinstance(quantity, Decimal) else to_quantity(quantity)
    return q if q > 0 else ONE


def is_blank(value: Any) -> bool:
    """True for values that mean 'not provided' (None or empty text)."""
    return value is None or (isinstance(value, str) and not value.strip())
