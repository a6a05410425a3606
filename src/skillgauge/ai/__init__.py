"""
AI Module

Completion client with provider fallback, response cache, and question
generation.
"""

from .cache import ResponseCache
from .client import AIClient, CompletionRequest, get_ai_client
from .question_generator import QuestionGenerator

__all__ = [
    "AIClient",
    "CompletionRequest",
    "QuestionGenerator",
    "ResponseCache",
    "get_ai_client",
]
