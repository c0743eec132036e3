# Copyright (c) Syntropy Systems
"""Numeric accuracy."""
from __future__ import annotations

import math


def round2(value: float) -> float:
    """Round half up to two decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def number_accuracy(expected: float, actual: float) -> float:
    """Accuracy between two numbers as the inverse of their relative error.

    Returns a percentage in [0, 100].
    """
    if expected == actual:
        return 100.0

    max_value = max(abs(expected), abs(actual))
    if max_value == 0:
        return 100.0

    relative_error = abs(expected - actual) / max_value
    if math.isnan(relative_error):
        return 0.0

    return round2(max(0.0, (1 - relative_error) * 100))
