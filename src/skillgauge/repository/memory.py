"""
In-Memory Repository

Dictionary-backed repository for tests, demos and single-process use.
Shares the selection policy with the adaptive session selector.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import UTC, datetime

from skillgauge.assessment.errors import AssessmentNotFoundError, NoQuestionAvailableError
from skillgauge.assessment.selection import QuestionSelector, SelectionPolicy
from skillgauge.assessment.validation import validate_assessment
from skillgauge.core.schemas import (
    Assessment,
    AssessmentResult,
    KnowledgeArea,
    KnowledgeAreaProficiency,
    Question,
    Submission,
    SubmissionQuestion,
)


class InMemoryAssessmentRepository:
    """Assessment repository holding everything in process memory."""

    def __init__(
        self,
        assessments: Iterable[Assessment] = (),
        *,
        knowledge_areas: Iterable[KnowledgeArea] = (),
        policy: SelectionPolicy = "stable",
        seed: int | None = None,
    ):
        self.assessments: dict[str, Assessment] = {a.id: a for a in assessments}
        self.knowledge_areas: dict[str, KnowledgeArea] = {a.id: a for a in knowledge_areas}
        self.results: dict[str, AssessmentResult] = {}
        self.proficiencies: dict[tuple[str, str], KnowledgeAreaProficiency] = {}
        self.policy = policy
        self.seed = seed

    def add_assessment(self, assessment: Assessment) -> None:
        self.assessments[assessment.id] = assessment

    async def load_assessment(self, assessment_id: str) -> Assessment:
        assessment = self.assessments.get(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(f"Assessment not found with ID: {assessment_id}")
        return validate_assessment(assessment)

    async def select_next_question(
        self,
        assessment_id: str,
        target_difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> Question | None:
        assessment = await self.load_assessment(assessment_id)
        selector = QuestionSelector(
            assessment.questions,
            policy=self.policy,
            seed=self.seed,
            difficulty_range=assessment.difficulty_range,
        )
        try:
            return selector.select(target_difficulty, exclude_ids, area_filter)
        except NoQuestionAvailableError:
            return None

    async def persist_result(self, result: AssessmentResult) -> None:
        self.results.setdefault(result.id, result)

    async def persist_knowledge_area(self, user_id: str, area_id: str, proficiency: float) -> None:
        self.proficiencies[(user_id, area_id)] = KnowledgeAreaProficiency(
            user_id=user_id,
            area_id=area_id,
            proficiency=proficiency,
            last_assessed=datetime.now(UTC),
        )

    async def list_results(self, user_id: str, limit: int = 10) -> list[AssessmentResult]:
        mine = [r for r in self.results.values() if r.user_id == user_id]
        mine.sort(key=lambda r: r.completed_at, reverse=True)
        return mine[:limit]

    async def list_submissions(self, user_id: str, topic_id: str | None = None) -> list[Submission]:
        submissions = []
        newest_first = await self.list_results(user_id, limit=len(self.results) or 1)
        for result in reversed(newest_first):
            assessment = self.assessments.get(result.assessment_id)
            result_topic = (assessment.topic_id if assessment else None) or result.assessment_id
            if topic_id is not None and result_topic != topic_id:
                continue
            submissions.append(
                Submission(
                    assessment_id=result.assessment_id,
                    topic_id=result_topic,
                    score=result.score,
                    questions=[
                        SubmissionQuestion(
                            question_id=q.question_id,
                            correct=q.correct,
                            topic_area=q.knowledge_area_id,
                        )
                        for q in result.question_results
                    ],
                )
            )
        return submissions

    async def list_knowledge_areas(self) -> list[KnowledgeArea]:
        return list(self.knowledge_areas.values())

    async def list_proficiencies(self, user_id: str) -> list[KnowledgeAreaProficiency]:
        return [p for (uid, _), p in self.proficiencies.items() if uid == user_id]
