"""
Numeric helpers shared by the analysis and scoring services.

Rounding is half-up (``floor(x + 0.5)``) so that percentages computed here
match the values the frontend has always displayed, rather than Python's
banker's rounding.
"""

import math
from typing import Union

Number = Union[int, float]


def round_half_up(value: Number, digits: int = 0) -> Number:
    """
    Round ``value`` half-up to ``digits`` decimal places.

    Args:
        value: Number to round
        digits: Decimal places to keep (0 returns an int)

    Returns:
        Rounded number (int when digits == 0)

    Example:
        >>> round_half_up(2.5)
        3
        >>> round_half_up(66.666, 2)
        66.67
    """
    if digits <= 0:
        return int(math.floor(value + 0.5))

    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percentage(part: Number, whole: Number, digits: int = 0) -> Number:
    """Rounded ``part / whole * 100``; 0 when ``whole`` is not positive."""
    if not whole or whole <= 0:
        return 0 if digits <= 0 else 0.0
    return round_half_up(part / whole * 100, digits)


def safe_average(total: Number, count: int) -> int:
    """Half-up rounded average, 0 for an empty set."""
    if count <= 0:
        return 0
    return round_half_up(total / count)


def clamp(value: Number, lower: Number, upper: Number) -> Number:
    """Clamp ``value`` into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def non_negative_int(value, default: int = 0) -> int:
    """
    Coerce loosely typed numeric input to a non-negative int.

    ``None``, unparsable values and negatives fall back to ``default``
    (negatives clamp to 0).
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return max(0, int(number))
