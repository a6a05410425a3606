"""
Answer Evaluator

Decides whether a submitted answer is correct for a question. Pure and
total: absent answers and answers of the wrong shape are incorrect, never
errors.

Per-kind rules:
- choice, single-select: the submitted option id equals the correct id
- choice, multi-select: same option ids as the correct set, order-independent
- short text: exact match when case-sensitive, otherwise case-folded and
  trimmed match against the correct answer or any acceptable answer
- code: every test case's expected output appears in the submitted text
- multi-step: every step's sub-answer equals that step's correct answer
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, assert_never

from skillgauge.core.schemas import (
    ChoiceQuestion,
    CodeQuestion,
    MultiStepQuestion,
    Question,
    ShortTextQuestion,
)

logger = logging.getLogger(__name__)


def evaluate(question: Question, answer: Any) -> bool:
    """Grade an answer against a question.

    Args:
        question: Validated question
        answer: Raw submitted answer (any shape)

    Returns:
        True only if the answer is correct
    """
    if answer is None or (isinstance(answer, str) and not answer):
        return False

    try:
        match question:
            case ChoiceQuestion():
                correct = _evaluate_choice(question, answer)
            case ShortTextQuestion():
                correct = _evaluate_short_text(question, answer)
            case CodeQuestion():
                correct = _evaluate_code(question, answer)
            case MultiStepQuestion():
                correct = _evaluate_multi_step(question, answer)
            case _:
                assert_never(question)
    except Exception:
        logger.warning("Evaluation of question %s failed; treating as incorrect", question.id)
        return False

    return correct


def _evaluate_choice(question: ChoiceQuestion, answer: Any) -> bool:
    if isinstance(question.correct_answer, tuple):
        if not _is_string_collection(answer):
            _log_ambiguous(question, answer)
            return False
        submitted = list(answer)
        return len(submitted) == len(question.correct_answer) and set(submitted) == set(
            question.correct_answer
        )

    if not isinstance(answer, str):
        _log_ambiguous(question, answer)
        return False
    return answer == question.correct_answer


def _evaluate_short_text(question: ShortTextQuestion, answer: Any) -> bool:
    if not isinstance(answer, str):
        _log_ambiguous(question, answer)
        return False

    if question.case_sensitive:
        return answer == question.correct_answer

    normalized = normalize_text(answer)
    accepted = (question.correct_answer, *question.acceptable_answers)
    return any(normalized == normalize_text(candidate) for candidate in accepted)


def _evaluate_code(question: CodeQuestion, answer: Any) -> bool:
    # Substring match against expected outputs, not real execution
    if not isinstance(answer, str):
        _log_ambiguous(question, answer)
        return False
    return all(case.expected_output in answer for case in question.test_cases)


def _evaluate_multi_step(question: MultiStepQuestion, answer: Any) -> bool:
    if not isinstance(answer, Mapping):
        _log_ambiguous(question, answer)
        return False
    return all(
        isinstance(answer.get(step.id), str) and answer[step.id] == step.correct_answer
        for step in question.steps
    )


def normalize_text(value: str) -> str:
    """Case-fold and trim a short-text answer for comparison."""
    return value.strip().casefold()


def _is_string_collection(value: Any) -> bool:
    return isinstance(value, list | tuple | set | frozenset) and all(
        isinstance(item, str) for item in value
    )


def _log_ambiguous(question: Question, answer: Any) -> None:
    logger.debug(
        "Answer of type %s does not fit %s question %s",
        type(answer).__name__,
        question.kind,
        question.id,
    )
