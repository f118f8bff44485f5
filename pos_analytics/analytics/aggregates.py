"""
Aggregate Function Library

Pure numeric primitives shared by the analytics modules. No I/O, no state.
"""

import math
from typing import Sequence

import numpy as np


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty input."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def median(values: Sequence[float]) -> float:
    """Median, averaging the two middle elements for even lengths; 0 when empty."""
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def moving_average(window: int, values: Sequence[float]) -> float:
    """
    Mean of the last ``window`` values.

    Falls back to the mean of every value when fewer than ``window`` exist.
    """
    if len(values) == 0:
        return 0.0
    arr = np.asarray(values, dtype=float)
    if window <= 0 or len(arr) < window:
        return float(arr.mean())
    return float(arr[-window:].mean())


def exp_smooth(alpha: float, values: Sequence[float]) -> float:
    """
    Exponentially smoothed value of a series.

    Seeds with the first value and blends each value in iteration order, so
    callers must pass the series oldest first for the newest observation to
    carry the most weight.
    """
    if len(values) == 0:
        return 0.0
    smoothed = float(values[0])
    for value in values:
        smoothed = alpha * float(value) + (1 - alpha) * smoothed
    return smoothed


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Division guarded against zero and non-finite denominators."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator
