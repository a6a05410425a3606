"""Percentage helpers shared by scoring and gap analysis."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    ``round()`` uses banker's rounding (``round(12.5) == 12``); percentages
    shown to learners round 12.5 up to 13.
    """
    return math.floor(value + 0.5)


def percentage(part: int, whole: int) -> int:
    """Integer percentage of ``part`` over ``whole`` (0 when ``whole`` is 0)."""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)
