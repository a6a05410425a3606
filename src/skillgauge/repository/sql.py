"""
SQLAlchemy Repository

Content store and result persistence on the async SQLAlchemy session.
Reads run with default read-committed semantics; no locks are taken.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import desc, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from skillgauge.assessment.errors import AssessmentNotFoundError
from skillgauge.assessment.selection import SelectionPolicy, candidate_difficulties
from skillgauge.assessment.validation import parse_assessment, parse_question
from skillgauge.core.models import (
    AssessmentRecord,
    AssessmentResultRecord,
    KnowledgeAreaRecord,
    QuestionRecord,
    UserKnowledgeAreaRecord,
)
from skillgauge.core.schemas import (
    Assessment,
    AssessmentResult,
    DifficultyRange,
    KnowledgeArea,
    KnowledgeAreaProficiency,
    Question,
    Submission,
    SubmissionQuestion,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SqlAssessmentRepository:
    """Assessment repository backed by a database session."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        policy: SelectionPolicy = "stable",
        seed: int | None = None,
    ):
        """Initialize repository.

        Args:
            db: Database session
            policy: Tie-break among eligible questions (ascending id or seeded random)
            seed: Seed for the ``random`` policy
        """
        self.db = db
        self.policy = policy
        self._random = random.Random(seed)

    async def load_assessment(self, assessment_id: str) -> Assessment:
        result = await self.db.execute(
            select(AssessmentRecord)
            .where(AssessmentRecord.id == assessment_id)
            .options(selectinload(AssessmentRecord.questions))
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()

        if record is None:
            raise AssessmentNotFoundError(f"Assessment not found with ID: {assessment_id}")

        return parse_assessment(record.to_record())

    async def select_next_question(
        self,
        assessment_id: str,
        target_difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> Question | None:
        difficulty_range = await self._difficulty_range(assessment_id)

        for level in candidate_difficulties(target_difficulty, difficulty_range):
            query = (
                select(QuestionRecord)
                .where(
                    QuestionRecord.assessment_id == assessment_id,
                    QuestionRecord.difficulty == level,
                )
                .order_by(QuestionRecord.id)
            )
            if exclude_ids:
                query = query.where(QuestionRecord.id.not_in(list(exclude_ids)))
            if area_filter:
                query = query.where(QuestionRecord.knowledge_area_id.in_(list(area_filter)))

            if self.policy == "stable":
                record = (await self.db.execute(query.limit(1))).scalar_one_or_none()
            else:
                candidates = (await self.db.execute(query)).scalars().all()
                record = self._random.choice(candidates) if candidates else None

            if record is not None:
                return parse_question(record.to_record())

        logger.info(
            "No question available for assessment %s near difficulty %s",
            assessment_id,
            target_difficulty,
        )
        return None

    async def persist_result(self, result: AssessmentResult) -> None:
        """Append a result; a second write with the same id is a no-op.

        The primary key decides, so concurrent writers cannot both insert.
        """
        dumped = result.model_dump(mode="json")
        statement = insert(AssessmentResultRecord).values(
            id=result.id,
            user_id=result.user_id,
            assessment_id=result.assessment_id,
            score=result.score,
            time_taken_seconds=result.time_taken_seconds,
            completed_at=result.completed_at,
            end_reason=str(result.end_reason),
            passed=result.passed,
            question_results=dumped["question_results"],
            knowledge_gaps=dumped["knowledge_gaps"],
        )
        try:
            await self.db.execute(statement)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if await self.db.get(AssessmentResultRecord, result.id) is None:
                raise
            logger.info("Result %s already persisted; skipping", result.id)

    async def persist_knowledge_area(self, user_id: str, area_id: str, proficiency: float) -> None:
        result = await self.db.execute(
            select(UserKnowledgeAreaRecord).where(
                UserKnowledgeAreaRecord.user_id == user_id,
                UserKnowledgeAreaRecord.area_id == area_id,
            )
        )
        record = result.scalar_one_or_none()
        now = datetime.now(UTC)

        if record is None:
            self.db.add(
                UserKnowledgeAreaRecord(
                    user_id=user_id, area_id=area_id, proficiency=proficiency, last_assessed=now
                )
            )
        else:
            record.proficiency = proficiency
            record.last_assessed = now

        await self.db.commit()

    async def list_results(self, user_id: str, limit: int = 10) -> list[AssessmentResult]:
        result = await self.db.execute(
            select(AssessmentResultRecord)
            .where(AssessmentResultRecord.user_id == user_id)
            .order_by(desc(AssessmentResultRecord.completed_at))
            .limit(limit)
        )
        return [self._to_result(record) for record in result.scalars().all()]

    async def list_submissions(self, user_id: str, topic_id: str | None = None) -> list[Submission]:
        query = (
            select(AssessmentResultRecord, AssessmentRecord.topic_id)
            .join(AssessmentRecord, AssessmentRecord.id == AssessmentResultRecord.assessment_id)
            .where(AssessmentResultRecord.user_id == user_id)
            .order_by(AssessmentResultRecord.completed_at)
        )
        if topic_id is not None:
            query = query.where(AssessmentRecord.topic_id == topic_id)

        rows = (await self.db.execute(query)).all()
        return [
            Submission(
                assessment_id=record.assessment_id,
                topic_id=record_topic or record.assessment_id,
                score=record.score,
                questions=[
                    SubmissionQuestion(
                        question_id=entry["question_id"],
                        correct=bool(entry.get("correct")),
                        topic_area=entry.get("knowledge_area_id"),
                    )
                    for entry in record.question_results or []
                ],
            )
            for record, record_topic in rows
        ]

    async def list_knowledge_areas(self) -> list[KnowledgeArea]:
        result = await self.db.execute(select(KnowledgeAreaRecord).order_by(KnowledgeAreaRecord.id))
        return [KnowledgeArea.model_validate(record) for record in result.scalars().all()]

    async def list_proficiencies(self, user_id: str) -> list[KnowledgeAreaProficiency]:
        result = await self.db.execute(
            select(UserKnowledgeAreaRecord).where(UserKnowledgeAreaRecord.user_id == user_id)
        )
        return [
            KnowledgeAreaProficiency.model_validate(record) for record in result.scalars().all()
        ]

    async def _difficulty_range(self, assessment_id: str) -> DifficultyRange:
        record = await self.db.get(AssessmentRecord, assessment_id)
        if record is None:
            raise AssessmentNotFoundError(f"Assessment not found with ID: {assessment_id}")
        return DifficultyRange(min=record.difficulty_min, max=record.difficulty_max)

    @staticmethod
    def _to_result(record: AssessmentResultRecord) -> AssessmentResult:
        return AssessmentResult.model_validate(
            {
                "id": record.id,
                "user_id": record.user_id,
                "assessment_id": record.assessment_id,
                "score": record.score,
                "time_taken_seconds": record.time_taken_seconds,
                "completed_at": record.completed_at,
                "question_results": record.question_results or [],
                "knowledge_gaps": record.knowledge_gaps or [],
                "end_reason": record.end_reason,
                "passed": record.passed,
            }
        )
