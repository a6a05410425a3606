"""
SkillGauge SQLAlchemy Models

Records backing the content store and persistence collaborators.
"""

from .assessments import (
    AssessmentRecord,
    AssessmentResultRecord,
    KnowledgeAreaRecord,
    QuestionRecord,
    UserKnowledgeAreaRecord,
)
from .base import Base, StringIdPrimaryKeyMixin, TimestampMixin

__all__ = [
    # Base
    "Base",
    "StringIdPrimaryKeyMixin",
    "TimestampMixin",
    # Assessments
    "AssessmentRecord",
    "QuestionRecord",
    "AssessmentResultRecord",
    # Knowledge areas
    "KnowledgeAreaRecord",
    "UserKnowledgeAreaRecord",
]
