"""
Difficulty Adjuster

Memoryless one-step walk over the difficulty scale: a correct answer moves
one level harder, an incorrect answer one level easier, clamped to the
assessment's difficulty range (1..5 by default).
"""

from __future__ import annotations

from skillgauge.core.schemas import DifficultyRange

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

DEFAULT_RANGE = DifficultyRange(min=MIN_DIFFICULTY, max=MAX_DIFFICULTY)

# Upper proficiency bound (exclusive) for each recommended difficulty level
PROFICIENCY_BANDS = [(20, 1), (40, 2), (60, 3), (80, 4)]


def next_difficulty(
    current: int, was_correct: bool, difficulty_range: DifficultyRange = DEFAULT_RANGE
) -> int:
    """Difficulty of the next question after an answer.

    Args:
        current: Difficulty of the question just answered
        was_correct: Whether the answer was correct
        difficulty_range: Inclusive bounds to clamp to

    Returns:
        ``min(max, current + 1)`` when correct, ``max(min, current - 1)`` otherwise
    """
    step = 1 if was_correct else -1
    return difficulty_range.clamp(current + step)


def difficulty_for_proficiency(proficiency: float) -> int:
    """Recommended starting difficulty for a proficiency score (0-100).

    Returns:
        1 below 20, 2 below 40, 3 below 60, 4 below 80, otherwise 5
    """
    for upper_bound, difficulty in PROFICIENCY_BANDS:
        if proficiency < upper_bound:
            return difficulty
    return MAX_DIFFICULTY
