"""
Unit Tests for Assessment Validation

Malformed questions are fatal to loading an assessment.
"""

import pytest
from factories import assessment, choice, short_text

from skillgauge.assessment import (
    MalformedQuestionError,
    parse_assessment,
    parse_question,
    validate_assessment,
    validate_question,
)
from skillgauge.core.schemas import (
    ChoiceOption,
    ChoiceQuestion,
    CodeQuestion,
    DifficultyRange,
    MultiStepQuestion,
    QuestionStep,
)


class TestValidateQuestion:
    """Per-kind invariants."""

    def test_well_formed_questions_pass(self):
        question = choice("q1", correct=("a", "b"))

        assert validate_question(question) is question

    def test_choice_with_unknown_correct_option(self):
        question = choice("q1", correct="z")

        with pytest.raises(MalformedQuestionError) as exc_info:
            validate_question(question)

        assert exc_info.value.question_id == "q1"
        assert "unknown options" in exc_info.value.reason

    def test_choice_with_duplicate_option_ids(self):
        question = ChoiceQuestion(
            id="q1",
            prompt="?",
            difficulty=2,
            options=(ChoiceOption(id="a", text="A"), ChoiceOption(id="a", text="A again")),
            correct_answer="a",
        )

        with pytest.raises(MalformedQuestionError, match="duplicate option ids"):
            validate_question(question)

    def test_multi_select_without_correct_options(self):
        question = choice("q1", correct=())

        with pytest.raises(MalformedQuestionError, match="no correct options"):
            validate_question(question)

    def test_short_text_with_blank_answer(self):
        question = short_text("q1", correct="   ")

        with pytest.raises(MalformedQuestionError, match="empty correct answer"):
            validate_question(question)

    def test_code_without_test_cases(self):
        question = CodeQuestion(
            id="q1", prompt="?", difficulty=3, language="python", test_cases=()
        )

        with pytest.raises(MalformedQuestionError, match="no test cases"):
            validate_question(question)

    def test_multi_step_with_duplicate_steps(self):
        step = QuestionStep(id="s1", prompt="?", correct_answer="1")
        question = MultiStepQuestion(id="q1", prompt="?", difficulty=3, steps=(step, step))

        with pytest.raises(MalformedQuestionError, match="duplicate step ids"):
            validate_question(question)


class TestValidateAssessment:
    """Whole-assessment checks collect every problem."""

    def test_duplicate_question_ids(self):
        definition = assessment([choice("q1"), choice("q1")])

        with pytest.raises(MalformedQuestionError, match="duplicate question id"):
            validate_assessment(definition)

    def test_difficulty_outside_range(self):
        definition = assessment(
            [choice("q1", difficulty=5)], difficulty_range=DifficultyRange(min=1, max=3)
        )

        with pytest.raises(MalformedQuestionError, match="outside 1..3"):
            validate_assessment(definition)

    def test_all_problems_are_reported(self):
        definition = assessment([choice("q1", correct="z"), short_text("q2", correct="")])

        with pytest.raises(MalformedQuestionError) as exc_info:
            validate_assessment(definition)

        assert exc_info.value.question_id == "q1"
        assert len(exc_info.value.problems) == 2
        assert exc_info.value.problems[1].startswith("q2:")

    def test_valid_assessment_is_returned(self):
        definition = assessment([choice("q1"), short_text("q2")])

        assert validate_assessment(definition) is definition


class TestParsing:
    """Raw records from the content store."""

    def test_parse_question_by_kind(self):
        question = parse_question(
            {
                "id": "q1",
                "kind": "short_text",
                "prompt": "Capital of France?",
                "difficulty": 2,
                "correct_answer": "Paris",
            }
        )

        assert question.kind == "short_text"
        assert question.case_sensitive is False

    def test_parse_question_with_unknown_kind(self):
        with pytest.raises(MalformedQuestionError) as exc_info:
            parse_question({"id": "q9", "kind": "essay", "prompt": "?", "difficulty": 1})

        assert exc_info.value.question_id == "q9"

    def test_parse_question_with_bad_difficulty(self):
        with pytest.raises(MalformedQuestionError):
            parse_question(
                {
                    "id": "q1",
                    "kind": "short_text",
                    "prompt": "?",
                    "difficulty": 9,
                    "correct_answer": "x",
                }
            )

    def test_parse_assessment_points_at_failing_question(self):
        record = {
            "id": "a1",
            "questions": [
                {
                    "id": "ok",
                    "kind": "short_text",
                    "prompt": "?",
                    "difficulty": 1,
                    "correct_answer": "x",
                },
                {"id": "broken", "kind": "code", "prompt": "?", "difficulty": 1},
            ],
        }

        with pytest.raises(MalformedQuestionError) as exc_info:
            parse_assessment(record)

        assert exc_info.value.question_id == "broken"

    def test_parse_assessment_multi_select_from_list(self):
        record = {
            "id": "a1",
            "adaptive": True,
            "questions": [
                {
                    "id": "q1",
                    "kind": "choice",
                    "prompt": "?",
                    "difficulty": 3,
                    "options": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}],
                    "correct_answer": ["a", "b"],
                }
            ],
        }

        parsed = parse_assessment(record)

        assert parsed.questions[0].multi_select is True
        assert parsed.difficulty_range == DifficultyRange(min=1, max=5)
