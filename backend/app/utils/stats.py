"""
Small numeric helpers for the analytics services.

Every function returns 0 for empty input instead of dividing by zero.
"""

import math
from typing import Sequence, Tuple


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    avg = mean(values)
    return sum((v - avg) ** 2 for v in values) / len(values)


def population_stddev(values: Sequence[float]) -> float:
    return math.sqrt(population_variance(values))


def linear_regression(values: Sequence[float]) -> Tuple[float, float]:
    """
    Ordinary least squares over (index, value) pairs.

    Returns (slope, intercept). A single point, or no points, gives a
    flat line through the mean.
    """
    n = len(values)
    if n == 0:
        return 0.0, 0.0

    x_mean = (n - 1) / 2
    y_mean = mean(values)

    numerator = sum((i - x_mean) * (y - y_mean) for i, y in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(n))

    if denominator == 0:
        slope = 0.0
    else:
        slope = numerator / denominator

    return slope, y_mean - slope * x_mean


def percent_change(old: float, new: float) -> float:
    """(new - old) / old * 100, or 0 when old is 0."""
    if old == 0:
        return 0.0
    return (new - old) / old * 100
