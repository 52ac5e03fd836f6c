from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Return ``part / whole`` as a rounded percentage, 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    return round_half_up(part * 100 / whole)


def mean_rounded(values: list[float]) -> int:
    """Return the rounded mean of ``values``, 0 for an empty list."""
    if not values:
        return 0
    return round_half_up(sum(values) / len(values))
