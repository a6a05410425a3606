"""
Repositories

Content store and persistence collaborators of the assessment engine.
"""

from .base import AssessmentRepository
from .memory import InMemoryAssessmentRepository
from .sql import SqlAssessmentRepository

__all__ = [
    "AssessmentRepository",
    "InMemoryAssessmentRepository",
    "SqlAssessmentRepository",
]
