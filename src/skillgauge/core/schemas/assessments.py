"""
Assessment Pydantic Schemas

Assessment definitions, result log entries, terminal results and reports,
plus request/response models for the assessment API endpoints.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .questions import Question, QuestionKind


class DifficultyRange(BaseModel):
    """Inclusive difficulty bounds for an assessment."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(default=1, ge=1, le=5)
    max: int = Field(default=5, ge=1, le=5)

    @model_validator(mode="after")
    def check_order(self) -> DifficultyRange:
        if self.min > self.max:
            raise ValueError(f"difficulty range min ({self.min}) exceeds max ({self.max})")
        return self

    def clamp(self, difficulty: int) -> int:
        return max(self.min, min(self.max, difficulty))

    def __contains__(self, difficulty: object) -> bool:
        return isinstance(difficulty, int) and self.min <= difficulty <= self.max


class Assessment(BaseModel):
    """Read-only assessment definition supplied by the content store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    topic_id: str | None = None
    questions: tuple[Question, ...]
    adaptive: bool = False
    time_limit_minutes: float | None = Field(default=None, gt=0)
    passing_score: float | None = Field(default=None, ge=0, le=100)
    difficulty_range: DifficultyRange = Field(default_factory=DifficultyRange)

    @property
    def time_limit_seconds(self) -> float | None:
        if self.time_limit_minutes is None:
            return None
        return self.time_limit_minutes * 60


# ============================================================================
# Result log and terminal artifacts
# ============================================================================


class QuestionResult(BaseModel):
    """One entry of the append-only result log."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    correct: bool
    user_answer: Any = None
    time_taken_seconds: int = Field(default=0, ge=0)
    difficulty: int = Field(ge=1, le=5)
    knowledge_area_id: str | None = None


ResourceType = Literal["article", "video", "exercise"]


class Resource(BaseModel):
    """Remediation resource recommended for a knowledge gap."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    type: ResourceType = "article"
    url: str


class KnowledgeGap(BaseModel):
    """Knowledge area flagged as weak in a session."""

    model_config = ConfigDict(frozen=True)

    area_id: str
    name: str
    proficiency: int = Field(ge=0, le=100)
    recommended_resources: tuple[Resource, ...] = ()


class EndReason(StrEnum):
    """Why a session transitioned to Completed."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    NO_QUESTION_AVAILABLE = "no_question_available"


class AssessmentResult(BaseModel):
    """Terminal artifact of a session. Created once, never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    assessment_id: str
    score: int = Field(ge=0, le=100)
    time_taken_seconds: int = Field(ge=0)
    completed_at: datetime
    question_results: tuple[QuestionResult, ...] = ()
    knowledge_gaps: tuple[KnowledgeGap, ...] = ()
    end_reason: EndReason = EndReason.COMPLETED
    passed: bool | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ended_early(self) -> bool:
        return self.end_reason is not EndReason.COMPLETED


class DifficultyBreakdown(BaseModel):
    """Correct/total tally for one difficulty level."""

    model_config = ConfigDict(frozen=True)

    difficulty: int
    correct: int
    total: int
    percentage: int


PerformanceLevel = Literal["excellent", "good", "satisfactory", "needs_improvement"]


class AssessmentReport(BaseModel):
    """Score summary and remediation report for a completed session."""

    model_config = ConfigDict(frozen=True)

    result: AssessmentResult
    performance_level: PerformanceLevel
    correct_count: int
    incorrect_count: int
    average_time_seconds: float
    difficulty_breakdown: tuple[DifficultyBreakdown, ...]
    ended_early: bool
    message: str


# ============================================================================
# Historical submissions (knowledge gap retrospective)
# ============================================================================


class SubmissionQuestion(BaseModel):
    """Per-question correctness of a historical submission."""

    question_id: str
    correct: bool = False
    topic_area: str | None = None


class Submission(BaseModel):
    """Historical assessment submission used for gap analysis."""

    assessment_id: str | None = None
    topic_id: str
    score: float
    questions: list[SubmissionQuestion] = Field(default_factory=list)


# ============================================================================
# Knowledge map
# ============================================================================


class KnowledgeArea(BaseModel):
    """Knowledge area (topic) descriptor from the content store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str = ""
    parent_id: str | None = None


class KnowledgeAreaProficiency(BaseModel):
    """Stored proficiency record for one user and area."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    area_id: str
    proficiency: float = Field(ge=0, le=100)
    last_assessed: datetime | None = None


class KnowledgeMapArea(BaseModel):
    area_id: str
    name: str
    description: str = ""
    parent_id: str | None = None
    proficiency: float = 0
    last_assessed: datetime | None = None
    needs_review: bool = False


class UserKnowledgeMap(BaseModel):
    user_id: str
    areas: list[KnowledgeMapArea]


# ============================================================================
# API request/response schemas
# ============================================================================


class SessionStartRequest(BaseModel):
    """Request schema for starting an assessment session."""

    assessment_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)


class AnswerSubmit(BaseModel):
    """Request schema for submitting an answer to the current question."""

    question_id: str
    answer: Any = None


class SessionStateResponse(BaseModel):
    session_id: str
    assessment_id: str
    user_id: str
    status: Literal["in_progress", "completed"]
    answered: int
    current_difficulty: int | None = None
    current_question: Question | None = None
    remaining_seconds: int | None = None


class AnswerResponse(BaseModel):
    question_id: str
    correct: bool
    next_question: Question | None = None
    session_completed: bool = False
    message: str | None = None


class NextQuestionResponse(BaseModel):
    question: Question


class KnowledgeGapsRequest(BaseModel):
    submissions: list[Submission]


class KnowledgeGapsResponse(BaseModel):
    knowledge_gaps: dict[str, list[str]]


class QuestionGenerationRequest(BaseModel):
    """Request schema for AI question generation."""

    topic: str = Field(min_length=1)
    difficulty: int | None = Field(default=None, ge=1, le=5)
    proficiency: float = Field(default=50, ge=0, le=100)
    kinds: list[QuestionKind] = Field(default_factory=lambda: ["choice", "short_text"])
    count: int = Field(default=5, ge=1, le=20)
    knowledge_gaps: list[str] = Field(default_factory=list)
    subtopics: list[str] = Field(default_factory=list)
    knowledge_area_id: str | None = None


class QuestionGenerationResponse(BaseModel):
    questions: list[Question]
