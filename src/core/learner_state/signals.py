# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Numeric helpers shared by the estimators.

Rounding goes through Decimal with ROUND_HALF_UP so that scores do not
depend on binary floating point ties (50 * 1.95 must round to 98 on
every platform).
"""

import math
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

_ONE = Decimal("1")


def to_decimal(value: float | int) -> Decimal:
    """Convert a number to Decimal through its shortest repr."""
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(repr(float(value)))


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    if not isinstance(value, Decimal):
        value = to_decimal(value)
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def round_to(value: float, places: int) -> float:
    """Round to a fixed number of decimal places, halves away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def clamp_score(value: float | Decimal) -> int:
    """Round and clamp a score into [0, 100]."""
    return int(clamp(round_half_up(value), 0, 100))


def mean(values: Sequence[float], default: float = 0.0) -> float:
    """Arithmetic mean, or default for an empty sequence."""
    if not values:
        return default
    return math.fsum(values) / len(values)


def trailing(values: Sequence[float], size: int) -> list[float]:
    """Last `size` values of a series."""
    if size <= 0:
        return []
    return list(values[-size:])


def improvement_rate(window: Sequence[float]) -> float:
    """Mean of the second half of a window minus the mean of the first half.

    Windows with fewer than two values have no trend and return 0.
    """
    if len(window) < 2:
        return 0.0
    half = len(window) // 2
    return mean(window[half:]) - mean(window[:half])


def consistency(window: Sequence[float]) -> float:
    """1 minus the population standard deviation, floored at 0."""
    if not window:
        return 0.0
    centre = mean(window)
    variance = math.fsum((value - centre) ** 2 for value in window) / len(window)
    return max(0.0, 1.0 - math.sqrt(variance))


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    x_mean = (n - 1) / 2
    y_mean = mean(values)
    numerator = math.fsum((i - x_mean) * (y - y_mean) for i, y in enumerate(values))
    denominator = math.fsum((i - x_mean) ** 2 for i in range(n))
    return numerator / denominator


def contains_any(text: str, terms: Sequence[str]) -> bool:
    """Case-insensitive substring match against any of the terms."""
    lowered = text.lower()
    return any(term.lower() in lowered for term in terms)
