# File: utils/math_utils.py
"""Math and calculation utilities for habitchain.

Pure Python functions used by the statistics and heatmap engines.

Functions:
    - round_rate: Consistent rounding to configured precision
    - safe_ratio: Division with zero-denominator protection
    - calculate_percentage: Progress percentage calculations
    - clamp: Bound a value to a range
    - mean: Average of a sequence with empty protection
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default float precision for rates
DATA_FLOAT_PRECISION = 4


# ==============================================================================
# Rate Arithmetic
# ==============================================================================


def round_rate(value: float, precision: int = DATA_FLOAT_PRECISION) -> float:
    """Round a rate to the configured precision.

    Examples:
        round_rate(0.123456) → 0.1235
        round_rate(1.0) → 1.0
    """
    return round(value, precision)


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is zero or negative.

    Examples:
        safe_ratio(5, 10) → 0.5
        safe_ratio(5, 0) → 0.0  # Division by zero protection
    """
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def calculate_percentage(
    current: float,
    target: float,
    precision: int = 2,
) -> float:
    """Calculate progress percentage with proper rounding.

    Args:
        current: Current progress value
        target: Target/total value
        precision: Number of decimal places for rounding

    Returns:
        Percentage (0-100) with proper rounding, or 0.0 if target is 0

    Examples:
        calculate_percentage(50, 100) → 50.0
        calculate_percentage(1, 3) → 33.33
        calculate_percentage(5, 0) → 0.0  # Division by zero protection
    """
    if target <= 0:
        return 0.0
    return round((current / target) * 100, precision)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between minimum and maximum bounds.

    Examples:
        clamp(1.5, 0, 1) → 1
        clamp(-0.2, 0, 1) → 0
        clamp(0.5, 0, 1) → 0.5
    """
    return max(min_val, min(value, max_val))


def mean(values: Iterable[float]) -> float:
    """Return the arithmetic mean, or 0.0 for an empty input."""
    items = list(values)
    if not items:
        _LOGGER.debug("mean: empty input, returning 0.0")
        return 0.0
    return sum(items) / len(items)
