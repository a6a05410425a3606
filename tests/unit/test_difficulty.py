"""
Unit Tests for the Difficulty Adjuster

One-step walk clamped to the difficulty range.
"""

import pytest

from skillgauge.assessment import difficulty_for_proficiency, next_difficulty
from skillgauge.core.schemas import DifficultyRange


class TestNextDifficulty:
    """Memoryless difficulty walk."""

    @pytest.mark.parametrize("current", [1, 2, 3, 4, 5])
    def test_correct_never_gets_easier(self, current):
        assert current <= next_difficulty(current, True) <= 5

    @pytest.mark.parametrize("current", [1, 2, 3, 4, 5])
    def test_incorrect_never_gets_harder(self, current):
        assert 1 <= next_difficulty(current, False) <= current

    def test_clamped_at_bounds(self):
        assert next_difficulty(5, True) == 5
        assert next_difficulty(1, False) == 1

    def test_steps_by_one(self):
        assert next_difficulty(3, True) == 4
        assert next_difficulty(3, False) == 2

    def test_custom_range(self):
        difficulty_range = DifficultyRange(min=2, max=4)

        assert next_difficulty(4, True, difficulty_range) == 4
        assert next_difficulty(2, False, difficulty_range) == 2
        assert next_difficulty(3, True, difficulty_range) == 4

    def test_invalid_range_rejected(self):
        with pytest.raises(ValueError):
            DifficultyRange(min=4, max=2)


class TestDifficultyForProficiency:
    """Recommended difficulty bands."""

    @pytest.mark.parametrize(
        ("proficiency", "expected"),
        [
            (0, 1),
            (19.9, 1),
            (20, 2),
            (39, 2),
            (40, 3),
            (59, 3),
            (60, 4),
            (79, 4),
            (80, 5),
            (100, 5),
        ],
    )
    def test_bands(self, proficiency, expected):
        assert difficulty_for_proficiency(proficiency) == expected
