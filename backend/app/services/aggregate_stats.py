"""Null-safe aggregate helpers shared by the KPI engine and reporting routes."""
import math
from numbers import Real
from typing import Iterable, Optional


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves going up (``floor(x + 0.5)``).

    For the non-negative ratios handled here this is round-half-away-from-zero,
    unlike Python's built-in banker's rounding (``round(2.5) == 2``).
    """
    return int(math.floor(value + 0.5))


def average(values: Iterable) -> Optional[float]:
    """
    Arithmetic mean of the finite numeric entries of ``values``.

    NaN, ±Infinity, ``None`` and non-numeric entries are skipped silently.
    Returns None when nothing is left to average.
    """
    finite = [float(v) for v in values if _is_finite_number(v)]
    if not finite:
        return None
    return sum(finite) / len(finite)


def percentage(count: int, total: int) -> Optional[int]:
    """``count / total`` as a whole percentage, or None when ``total`` is not positive."""
    if total <= 0:
        return None
    return round_half_up(count / total * 100)
