"""
Repository Interface

The engine's boundary with its content store and persistence collaborators.
Implementations are injected into the session manager and API layer; the
engine never reaches for a process-wide client.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Protocol

from skillgauge.core.schemas import (
    Assessment,
    AssessmentResult,
    KnowledgeArea,
    KnowledgeAreaProficiency,
    Question,
    Submission,
)


class AssessmentRepository(Protocol):
    """Content store + result persistence used by the assessment engine."""

    async def load_assessment(self, assessment_id: str) -> Assessment:
        """Load and validate an assessment.

        Raises:
            AssessmentNotFoundError: Unknown id
            MalformedQuestionError: A stored question is malformed
        """
        ...

    async def select_next_question(
        self,
        assessment_id: str,
        target_difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> Question | None:
        """Unanswered question at the target difficulty, else easier, else harder.

        Returns:
            Selected question, or None when no question is available
        """
        ...

    async def persist_result(self, result: AssessmentResult) -> None:
        """Append a terminal result. Idempotent on ``result.id``."""
        ...

    async def persist_knowledge_area(self, user_id: str, area_id: str, proficiency: float) -> None:
        """Upsert the user's proficiency in a knowledge area."""
        ...

    async def list_results(self, user_id: str, limit: int = 10) -> list[AssessmentResult]:
        """Most recent results of a user, newest first."""
        ...

    async def list_submissions(self, user_id: str, topic_id: str | None = None) -> list[Submission]:
        """Past results of a user, oldest first, shaped for historical gap analysis."""
        ...

    async def list_knowledge_areas(self) -> list[KnowledgeArea]:
        """All knowledge areas known to the content store."""
        ...

    async def list_proficiencies(self, user_id: str) -> list[KnowledgeAreaProficiency]:
        """Stored proficiency records of a user."""
        ...
