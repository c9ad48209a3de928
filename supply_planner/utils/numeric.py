"""
Numeric helpers shared by the recommendation computations.

Planning figures round halves toward +∞ (``2.5 → 3``,
``-2.5 → -2``), not to even as the built-in ``round()`` does, so unit
counts and percentage points split the same way on every run.
"""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +∞."""
    return math.floor(value + 0.5)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def mean(values: list[float]) -> float:
    """Arithmetic mean; 0.0 for an empty list."""
    return sum(values) / len(values) if values else 0.0
