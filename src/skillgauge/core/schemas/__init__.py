"""Pydantic schemas for assessment data and API validation."""

from .assessments import (
    AnswerResponse,
    AnswerSubmit,
    Assessment,
    AssessmentReport,
    AssessmentResult,
    DifficultyBreakdown,
    DifficultyRange,
    EndReason,
    KnowledgeArea,
    KnowledgeAreaProficiency,
    KnowledgeGap,
    KnowledgeGapsRequest,
    KnowledgeGapsResponse,
    KnowledgeMapArea,
    NextQuestionResponse,
    QuestionGenerationRequest,
    QuestionGenerationResponse,
    QuestionResult,
    Resource,
    SessionStartRequest,
    SessionStateResponse,
    Submission,
    SubmissionQuestion,
    UserKnowledgeMap,
)
from .questions import (
    ChoiceOption,
    ChoiceQuestion,
    CodeQuestion,
    CodeTestCase,
    MultiStepQuestion,
    Question,
    QuestionStep,
    ShortTextQuestion,
    question_adapter,
    question_list_adapter,
)

__all__ = [
    # Questions
    "Question",
    "ChoiceOption",
    "ChoiceQuestion",
    "ShortTextQuestion",
    "CodeTestCase",
    "CodeQuestion",
    "QuestionStep",
    "MultiStepQuestion",
    "question_adapter",
    "question_list_adapter",
    # Assessments
    "Assessment",
    "DifficultyRange",
    "QuestionResult",
    "Resource",
    "KnowledgeGap",
    "EndReason",
    "AssessmentResult",
    "DifficultyBreakdown",
    "AssessmentReport",
    # Historical analysis
    "Submission",
    "SubmissionQuestion",
    # Knowledge map
    "KnowledgeArea",
    "KnowledgeAreaProficiency",
    "KnowledgeMapArea",
    "UserKnowledgeMap",
    # API
    "SessionStartRequest",
    "SessionStateResponse",
    "AnswerSubmit",
    "AnswerResponse",
    "NextQuestionResponse",
    "QuestionGenerationRequest",
    "QuestionGenerationResponse",
    "KnowledgeGapsRequest",
    "KnowledgeGapsResponse",
]
