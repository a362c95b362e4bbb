"""
Analytics Utilities Package

Contains:
- stats: zero-safe mean/variance/regression helpers
"""

from app.utils.stats import (
    mean,
    population_variance,
    population_stddev,
    linear_regression,
    percent_change,
)

__all__ = [
    "mean",
    "population_variance",
    "population_stddev",
    "linear_regression",
    "percent_change",
]
