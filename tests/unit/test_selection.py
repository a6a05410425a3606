"""
Unit Tests for Question Selection

Target difficulty first, then easier, then harder; stable or seeded tie-break.
"""

import pytest
from factories import choice

from skillgauge.assessment import NoQuestionAvailableError, QuestionSelector
from skillgauge.assessment.selection import candidate_difficulties
from skillgauge.core.schemas import DifficultyRange


@pytest.fixture
def pool():
    return [
        choice("q-3b", 3, area="arrays"),
        choice("q-3a", 3, area="loops"),
        choice("q-2a", 2, area="loops"),
        choice("q-4a", 4, area="arrays"),
    ]


class TestCandidateDifficulties:
    def test_order_is_target_easier_harder(self):
        assert candidate_difficulties(3) == [3, 2, 4]

    def test_out_of_range_levels_skipped(self):
        assert candidate_difficulties(1) == [1, 2]
        assert candidate_difficulties(5) == [5, 4]
        assert candidate_difficulties(3, DifficultyRange(min=3, max=3)) == [3]


class TestQuestionSelector:
    """Selection over an in-memory pool."""

    def test_stable_policy_picks_lowest_id(self, pool):
        selector = QuestionSelector(pool)

        assert selector.select(3).id == "q-3a"

    def test_excluded_questions_are_skipped(self, pool):
        selector = QuestionSelector(pool)

        assert selector.select(3, exclude_ids=["q-3a"]).id == "q-3b"

    def test_falls_back_to_easier_before_harder(self, pool):
        selector = QuestionSelector(pool)

        question = selector.select(3, exclude_ids=["q-3a", "q-3b"])

        assert question.id == "q-2a"

    def test_falls_back_to_harder_when_no_easier(self, pool):
        selector = QuestionSelector(pool)

        question = selector.select(3, exclude_ids=["q-3a", "q-3b", "q-2a"])

        assert question.id == "q-4a"

    def test_does_not_look_two_levels_away(self, pool):
        selector = QuestionSelector(pool)

        with pytest.raises(NoQuestionAvailableError) as exc_info:
            selector.select(5, exclude_ids=["q-4a"])

        assert exc_info.value.target_difficulty == 5

    def test_area_filter(self, pool):
        selector = QuestionSelector(pool)

        assert selector.select(3, area_filter=["arrays"]).id == "q-3b"
        assert selector.select(2, area_filter=["arrays"]).id == "q-3b"

    def test_empty_area_filter_means_all_areas(self, pool):
        selector = QuestionSelector(pool)

        assert selector.select(3, area_filter=[]).id == "q-3a"

    def test_selection_does_not_mutate_pool(self, pool):
        selector = QuestionSelector(pool)
        selector.select(3)

        assert [q.id for q in selector.questions] == [q.id for q in pool]

    def test_random_policy_is_reproducible_with_seed(self):
        pool = [choice(f"q-{i:02d}", 3) for i in range(20)]

        first = [
            QuestionSelector(pool, policy="random", seed=7).select(3).id for _ in range(3)
        ]
        second = [
            QuestionSelector(pool, policy="random", seed=7).select(3).id for _ in range(3)
        ]

        assert first == second

    def test_random_policy_stays_within_eligible(self, pool):
        selector = QuestionSelector(pool, policy="random", seed=1)

        for _ in range(10):
            assert selector.select(3).id in {"q-3a", "q-3b"}
