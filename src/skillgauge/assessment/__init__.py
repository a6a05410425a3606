"""
Assessment Module

Adaptive assessment engine: question validation, answer evaluation,
difficulty adjustment, session control, knowledge gap analysis and scoring.
"""

from .difficulty import difficulty_for_proficiency, next_difficulty
from .errors import (
    AssessmentError,
    AssessmentNotFoundError,
    MalformedQuestionError,
    NoQuestionAvailableError,
    QuestionMismatchError,
    SessionCompletedError,
    SessionNotFoundError,
)
from .evaluator import evaluate
from .gap_analysis import KnowledgeGapAggregator, ResourceCatalog
from .knowledge_map import build_knowledge_map
from .manager import SessionManager
from .scoring import ScoreReportBuilder
from .selection import QuestionSelector
from .session import AnswerOutcome, AssessmentSession, SessionStatus, SessionTimer
from .validation import parse_assessment, parse_question, validate_assessment, validate_question

__all__ = [
    "AnswerOutcome",
    "AssessmentError",
    "AssessmentNotFoundError",
    "AssessmentSession",
    "KnowledgeGapAggregator",
    "MalformedQuestionError",
    "NoQuestionAvailableError",
    "QuestionMismatchError",
    "QuestionSelector",
    "ResourceCatalog",
    "ScoreReportBuilder",
    "SessionCompletedError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStatus",
    "SessionTimer",
    "build_knowledge_map",
    "difficulty_for_proficiency",
    "evaluate",
    "next_difficulty",
    "parse_assessment",
    "parse_question",
    "validate_assessment",
    "validate_question",
]
