"""
Assessment Engine Errors

Structural problems (malformed questions, unknown ids, misuse of a
session) are raised. Answer-shape anomalies are never raised; the
evaluator absorbs them as incorrect answers.
"""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for assessment engine errors."""


class MalformedQuestionError(AssessmentError):
    """A question fails its well-formedness invariants.

    Fatal to loading the assessment; the session does not start.
    """

    def __init__(self, question_id: str | None, reason: str, problems: list[str] | None = None):
        self.question_id = question_id
        self.reason = reason
        self.problems = problems or [f"{question_id}: {reason}"]
        label = question_id if question_id is not None else "<assessment>"
        super().__init__(f"Malformed question {label}: {reason}")


class NoQuestionAvailableError(AssessmentError):
    """Adaptive selection exhausted the target, easier and harder pools."""

    def __init__(self, target_difficulty: int):
        self.target_difficulty = target_difficulty
        super().__init__(f"No more questions available near difficulty {target_difficulty}")


class SessionCompletedError(AssessmentError):
    """An answer was submitted to a session that already completed."""


class QuestionMismatchError(AssessmentError):
    """An answer was submitted for a question other than the one presented."""

    def __init__(self, expected: str | None, received: str):
        self.expected = expected
        self.received = received
        super().__init__(f"Expected answer for question {expected}, received {received}")


class AssessmentNotFoundError(AssessmentError):
    """The content store has no assessment with the requested id."""


class SessionNotFoundError(AssessmentError):
    """No live or completed session with the requested id."""
