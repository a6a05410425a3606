"""
Assessment Models

Assessment definitions and their questions (owned by content authoring),
terminal assessment results, and per-user knowledge area proficiency.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, StringIdPrimaryKeyMixin, TimestampMixin

# Columns shared by every question kind; everything else lives in ``payload``
QUESTION_ENVELOPE = ("id", "kind", "prompt", "explanation", "difficulty", "knowledge_area_id")


class AssessmentRecord(Base, StringIdPrimaryKeyMixin, TimestampMixin):
    """Assessment definition. Read-only to the engine."""

    __tablename__ = "assessments"
    __table_args__ = (
        CheckConstraint("difficulty_min BETWEEN 1 AND 5", name="check_difficulty_min"),
        CheckConstraint("difficulty_max BETWEEN 1 AND 5", name="check_difficulty_max"),
        Index("idx_assessments_topic", "topic_id"),
    )

    title: Mapped[str] = mapped_column(String(200), default="")
    description: Mapped[str] = mapped_column(Text, default="")
    topic_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    adaptive: Mapped[bool] = mapped_column(Boolean, default=False)
    time_limit_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    passing_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    difficulty_min: Mapped[int] = mapped_column(SmallInteger, default=1)
    difficulty_max: Mapped[int] = mapped_column(SmallInteger, default=5)

    questions: Mapped[list[QuestionRecord]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="QuestionRecord.position",
    )

    def to_record(self) -> dict[str, Any]:
        """Raw assessment record in the engine's schema shape."""
        return {
            "id": self.id,
            "title": self.title or "",
            "description": self.description or "",
            "topic_id": self.topic_id,
            "adaptive": bool(self.adaptive),
            "time_limit_minutes": self.time_limit_minutes,
            "passing_score": self.passing_score,
            "difficulty_range": {"min": self.difficulty_min, "max": self.difficulty_max},
            "questions": [question.to_record() for question in self.questions],
        }


class QuestionRecord(Base, StringIdPrimaryKeyMixin):
    """Question of an assessment, kind-specific fields stored as JSON."""

    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("difficulty BETWEEN 1 AND 5", name="check_question_difficulty"),
        CheckConstraint(
            "kind IN ('choice', 'short_text', 'code', 'multi_step')", name="check_question_kind"
        ),
        Index("idx_questions_assessment_difficulty", "assessment_id", "difficulty"),
    )

    assessment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0, comment="Order within assessment")
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, default="")
    difficulty: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    knowledge_area_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, comment="Kind-specific fields (options, test_cases, steps, ...)"
    )

    assessment: Mapped[AssessmentRecord] = relationship(back_populates="questions")

    @classmethod
    def from_record(
        cls, record: dict[str, Any], *, assessment_id: str, position: int = 0
    ) -> QuestionRecord:
        """Build a row from a raw question record."""
        return cls(
            id=record["id"],
            assessment_id=assessment_id,
            position=position,
            kind=record["kind"],
            prompt=record["prompt"],
            explanation=record.get("explanation", ""),
            difficulty=record["difficulty"],
            knowledge_area_id=record.get("knowledge_area_id"),
            payload={k: v for k, v in record.items() if k not in QUESTION_ENVELOPE},
        )

    def to_record(self) -> dict[str, Any]:
        """Raw question record in the engine's schema shape."""
        return {
            **(self.payload or {}),
            "id": self.id,
            "kind": self.kind,
            "prompt": self.prompt,
            "explanation": self.explanation or "",
            "difficulty": self.difficulty,
            "knowledge_area_id": self.knowledge_area_id,
        }


class AssessmentResultRecord(Base):
    """Terminal result of a session. Append-only, keyed by a fresh id."""

    __tablename__ = "assessment_results"
    __table_args__ = (
        CheckConstraint("score BETWEEN 0 AND 100", name="check_result_score"),
        Index("idx_results_user_completed", "user_id", "completed_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    assessment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("assessments.id"), nullable=False
    )
    score: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    time_taken_seconds: Mapped[int] = mapped_column(Integer, default=0)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_reason: Mapped[str] = mapped_column(String(30), default="completed")
    passed: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    question_results: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    knowledge_gaps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    assessment: Mapped[AssessmentRecord] = relationship()


class KnowledgeAreaRecord(Base, StringIdPrimaryKeyMixin):
    """Knowledge area (topic) used to tag questions."""

    __tablename__ = "knowledge_areas"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    parent_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("knowledge_areas.id"), nullable=True
    )


class UserKnowledgeAreaRecord(Base, StringIdPrimaryKeyMixin):
    """Latest proficiency of a user in a knowledge area (upserted after sessions)."""

    __tablename__ = "user_knowledge_areas"
    __table_args__ = (
        UniqueConstraint("user_id", "area_id", name="uq_user_knowledge_area"),
        CheckConstraint("proficiency BETWEEN 0 AND 100", name="check_proficiency"),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    area_id: Mapped[str] = mapped_column(String(64), nullable=False)
    proficiency: Mapped[float] = mapped_column(Float, nullable=False)
    last_assessed: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
