"""
Assessment Validation

Well-formedness checks run once when an assessment is loaded, before a
session starts. Raw records from the content store or the AI generator are
parsed into the question union first; any schema error becomes a
``MalformedQuestionError`` so callers see a single failure type.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from skillgauge.assessment.errors import MalformedQuestionError
from skillgauge.core.schemas import (
    Assessment,
    ChoiceQuestion,
    CodeQuestion,
    MultiStepQuestion,
    Question,
    ShortTextQuestion,
    question_adapter,
)


def question_problems(question: Question) -> list[str]:
    """List every invariant violation of a single question.

    Args:
        question: Parsed question

    Returns:
        Human-readable problems (empty when well-formed)
    """
    problems: list[str] = []

    match question:
        case ChoiceQuestion():
            option_ids = [option.id for option in question.options]
            if not option_ids:
                problems.append("choice question has no options")
            if len(set(option_ids)) != len(option_ids):
                problems.append("choice question has duplicate option ids")
            expected = (
                question.correct_answer
                if isinstance(question.correct_answer, tuple)
                else (question.correct_answer,)
            )
            if not expected:
                problems.append("multi-select question has no correct options")
            if len(set(expected)) != len(expected):
                problems.append("correct answer lists an option more than once")
            unknown = sorted(set(expected) - set(option_ids))
            if unknown:
                problems.append(f"correct answer references unknown options {unknown}")
        case ShortTextQuestion():
            if not question.correct_answer.strip():
                problems.append("short-text question has an empty correct answer")
        case CodeQuestion():
            if not question.language.strip():
                problems.append("code question has no language")
            if not question.test_cases:
                problems.append("code question has no test cases")
        case MultiStepQuestion():
            step_ids = [step.id for step in question.steps]
            if not step_ids:
                problems.append("multi-step question has no steps")
            if len(set(step_ids)) != len(step_ids):
                problems.append("multi-step question has duplicate step ids")

    return problems


def validate_question(question: Question) -> Question:
    """Raise if the question violates its kind's invariants.

    Raises:
        MalformedQuestionError: On the first problem found
    """
    problems = question_problems(question)
    if problems:
        raise MalformedQuestionError(
            question.id, problems[0], [f"{question.id}: {p}" for p in problems]
        )
    return question


def validate_assessment(assessment: Assessment) -> Assessment:
    """Check every question of an assessment; fail fast on any problem.

    All problems are collected so the caller can report them together,
    the first one becomes the exception message.

    Raises:
        MalformedQuestionError: If any question is malformed
    """
    problems: list[tuple[str | None, str]] = []
    seen: set[str] = set()

    for question in assessment.questions:
        if question.id in seen:
            problems.append((question.id, "duplicate question id"))
        seen.add(question.id)

        if question.difficulty not in assessment.difficulty_range:
            problems.append(
                (
                    question.id,
                    f"difficulty {question.difficulty} outside "
                    f"{assessment.difficulty_range.min}..{assessment.difficulty_range.max}",
                )
            )

        problems.extend((question.id, p) for p in question_problems(question))

    if problems:
        question_id, reason = problems[0]
        raise MalformedQuestionError(question_id, reason, [f"{q}: {r}" for q, r in problems])

    return assessment


def parse_question(record: Mapping[str, Any]) -> Question:
    """Parse and validate a raw question record.

    Raises:
        MalformedQuestionError: If the record does not fit any question kind
    """
    try:
        question = question_adapter.validate_python(record)
    except ValidationError as exc:
        raise MalformedQuestionError(
            str(record.get("id")) if record.get("id") is not None else None,
            _first_error(exc),
        ) from exc
    return validate_question(question)


def parse_assessment(record: Mapping[str, Any]) -> Assessment:
    """Parse and validate a raw assessment record.

    Raises:
        MalformedQuestionError: If the record or any of its questions is malformed
    """
    try:
        assessment = Assessment.model_validate(record)
    except ValidationError as exc:
        question_id = _failing_question_id(record, exc)
        raise MalformedQuestionError(question_id, _first_error(exc)) from exc
    return validate_assessment(assessment)


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    return f"{location}: {error['msg']}" if location else error["msg"]


def _failing_question_id(record: Mapping[str, Any], exc: ValidationError) -> str | None:
    """Locate the question id a schema error points at, if any."""
    loc = exc.errors()[0]["loc"]
    if len(loc) >= 2 and loc[0] == "questions" and isinstance(loc[1], int):
        questions = record.get("questions") or []
        if loc[1] < len(questions) and isinstance(questions[loc[1]], Mapping):
            question_id = questions[loc[1]].get("id")
            return str(question_id) if question_id is not None else None
    return None
