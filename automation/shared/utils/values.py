"""Coercion helpers for attribute values stored as text."""

import math


def parse_number(value: str | None) -> float | None:
    """Return the float value of `value`, or None when it is not a finite number.

    Used for the numeric shadow column of stored values and for numeric
    condition operators. Empty strings, booleans spelled as words, NaN and
    infinities are not numbers.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
