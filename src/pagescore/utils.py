"""Small helpers shared by extractors and scoring."""

from decimal import Decimal, ROUND_HALF_UP
from typing import List


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero, unlike the banker's rounding of round().

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        Rounded value
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def as_list(value) -> List[str]:
    """Normalize a bs4 attribute that may be multi-valued (rel, class)."""
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)
