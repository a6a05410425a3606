"""
Question Selection

Picks the next unanswered question for an adaptive session. The target
difficulty is tried first, then one level easier, then one level harder.
When several questions are eligible at the same level, the tie-break is
either ascending question id (``stable``) or a seeded random choice
(``random``).
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection, Iterable, Sequence
from typing import Literal

from skillgauge.assessment.difficulty import DEFAULT_RANGE
from skillgauge.assessment.errors import NoQuestionAvailableError
from skillgauge.core.schemas import DifficultyRange, Question

logger = logging.getLogger(__name__)

SelectionPolicy = Literal["stable", "random"]


def candidate_difficulties(
    target: int, difficulty_range: DifficultyRange = DEFAULT_RANGE
) -> list[int]:
    """Difficulty levels to try, in order: target, easier, harder.

    Levels outside the range are skipped.
    """
    ordered = [target, target - 1, target + 1]
    return [level for level in ordered if level in difficulty_range]


class QuestionSelector:
    """Selects questions from an assessment's pool by difficulty.

    The selector never mutates the pool; answered questions are excluded by id.
    """

    def __init__(
        self,
        questions: Sequence[Question],
        *,
        policy: SelectionPolicy = "stable",
        seed: int | None = None,
        difficulty_range: DifficultyRange = DEFAULT_RANGE,
    ):
        """Initialize selector.

        Args:
            questions: Question pool
            policy: Tie-break rule among eligible questions
            seed: Seed for the ``random`` policy (reproducible runs)
            difficulty_range: Bounds for the easier/harder fallback
        """
        self.questions = tuple(questions)
        self.policy = policy
        self.difficulty_range = difficulty_range
        self._random = random.Random(seed)

    def select(
        self,
        target_difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> Question:
        """Select the next question near the target difficulty.

        Args:
            target_difficulty: Desired difficulty
            exclude_ids: Ids of questions already answered
            area_filter: Restrict to these knowledge areas (None or empty = all)

        Returns:
            Selected question

        Raises:
            NoQuestionAvailableError: If target, easier and harder pools are exhausted
        """
        for level in candidate_difficulties(target_difficulty, self.difficulty_range):
            candidates = self.eligible(level, exclude_ids, area_filter)
            if candidates:
                if level != target_difficulty:
                    logger.debug(
                        "No question at difficulty %s, falling back to %s",
                        target_difficulty,
                        level,
                    )
                return self.choose(candidates)

        raise NoQuestionAvailableError(target_difficulty)

    def eligible(
        self,
        difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> list[Question]:
        """Unanswered questions at exactly ``difficulty`` passing the area filter."""
        excluded = set(exclude_ids)
        areas = set(area_filter) if area_filter else None
        return [
            question
            for question in self.questions
            if question.difficulty == difficulty
            and question.id not in excluded
            and (areas is None or question.knowledge_area_id in areas)
        ]

    def choose(self, candidates: Iterable[Question]) -> Question:
        """Apply the tie-break policy to a non-empty candidate list."""
        ordered = sorted(candidates, key=lambda question: question.id)
        if self.policy == "random":
            return self._random.choice(ordered)
        return ordered[0]
