"""
Question Schemas

Tagged union over the four question kinds. The ``kind`` field is the
discriminator, so every consumer can dispatch exhaustively with ``match``.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

QuestionKind = Literal["choice", "short_text", "code", "multi_step"]


class QuestionBase(BaseModel):
    """Shared envelope for every question kind."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    prompt: str
    explanation: str = ""
    difficulty: int = Field(ge=1, le=5, description="1 = easiest, 5 = hardest")
    knowledge_area_id: str | None = None


class ChoiceOption(BaseModel):
    """One selectable option of a choice question."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str


class ChoiceQuestion(QuestionBase):
    """Single- or multi-select question.

    ``correct_answer`` is one option id (single-select) or a tuple of
    option ids (multi-select).
    """

    kind: Literal["choice"] = "choice"
    options: tuple[ChoiceOption, ...]
    correct_answer: str | tuple[str, ...]

    @property
    def multi_select(self) -> bool:
        return isinstance(self.correct_answer, tuple)


class ShortTextQuestion(QuestionBase):
    """Free-text answer compared against one or more accepted strings."""

    kind: Literal["short_text"] = "short_text"
    correct_answer: str
    case_sensitive: bool = False
    acceptable_answers: tuple[str, ...] = ()


class CodeTestCase(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: str = ""
    expected_output: str


class CodeQuestion(QuestionBase):
    """Programming question graded against expected outputs."""

    kind: Literal["code"] = "code"
    language: str
    starter_code: str = ""
    test_cases: tuple[CodeTestCase, ...]
    solution_code: str | None = None


class QuestionStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    prompt: str
    correct_answer: str
    hint: str | None = None


class MultiStepQuestion(QuestionBase):
    """Problem broken into steps; every step must be answered correctly."""

    kind: Literal["multi_step"] = "multi_step"
    steps: tuple[QuestionStep, ...]


Question = Annotated[
    ChoiceQuestion | ShortTextQuestion | CodeQuestion | MultiStepQuestion,
    Field(discriminator="kind"),
]

question_adapter: TypeAdapter[Question] = TypeAdapter(Question)
question_list_adapter: TypeAdapter[list[Question]] = TypeAdapter(list[Question])
