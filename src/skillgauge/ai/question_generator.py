"""
AI Question Generation

Generates candidate questions for a topic with the AI client. Prompts carry
the topic, target difficulty, requested question kinds and the learner's
historical knowledge gaps. Responses are cached by request hash.

Generated questions go through the same parsing and validation as authored
content; anything that does not validate yields an empty list.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from pydantic import ValidationError

from skillgauge.ai.cache import ResponseCache
from skillgauge.ai.client import CompletionRequest, get_ai_client
from skillgauge.assessment.difficulty import difficulty_for_proficiency
from skillgauge.assessment.errors import MalformedQuestionError
from skillgauge.assessment.validation import validate_question
from skillgauge.core.schemas import Question, question_list_adapter
from skillgauge.core.schemas.questions import QuestionKind

if TYPE_CHECKING:
    from skillgauge.ai.client import AIClient
    from skillgauge.config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write assessment questions for an adaptive learning platform. "
    "Respond with a JSON array only, no prose."
)

KIND_FORMATS: dict[str, str] = {
    "choice": (
        '{"kind": "choice", "prompt": str, "options": [{"id": str, "text": str}], '
        '"correct_answer": option id or list of option ids, "explanation": str}'
    ),
    "short_text": (
        '{"kind": "short_text", "prompt": str, "correct_answer": str, '
        '"acceptable_answers": [str], "explanation": str}'
    ),
    "code": (
        '{"kind": "code", "prompt": str, "language": str, "starter_code": str, '
        '"test_cases": [{"input": str, "expected_output": str}], "explanation": str}'
    ),
    "multi_step": (
        '{"kind": "multi_step", "prompt": str, '
        '"steps": [{"id": str, "prompt": str, "correct_answer": str}], "explanation": str}'
    ),
}


class QuestionGenerator:
    """Generates validated questions with an AI client and an explicit cache."""

    def __init__(
        self,
        client: AIClient,
        cache: ResponseCache | None = None,
        *,
        model: str = "claude-sonnet-4-5",
        max_tokens: int = 4096,
    ):
        """Initialize question generator.

        Args:
            client: AI completion client
            cache: Response cache (no caching when omitted)
            model: Model identifier passed to the client
            max_tokens: Completion budget
        """
        self.client = client
        self.cache = cache
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(
        cls, settings: Settings, client: AIClient | None = None
    ) -> QuestionGenerator:
        """Create generator with model, token budget and cache from settings."""
        return cls(
            client or get_ai_client(),
            ResponseCache(settings.AI_CACHE_TTL_SECONDS, settings.AI_CACHE_MAX_ENTRIES),
            model=settings.AI_MODEL,
            max_tokens=settings.AI_MAX_TOKENS,
        )

    def build_prompt(
        self,
        topic: str,
        *,
        difficulty: int,
        kinds: Sequence[QuestionKind],
        count: int,
        knowledge_gaps: Iterable[str] = (),
        subtopics: Iterable[str] = (),
    ) -> str:
        """Prompt text for one generation request."""
        lines = [
            f"Topic: {topic}",
            f"Difficulty: {difficulty} on a scale of 1 (easiest) to 5 (hardest)",
            f"Number of questions: {count}",
            f"Question kinds: {', '.join(kinds)}",
        ]

        subtopic_list = list(subtopics)
        if subtopic_list:
            lines.append(f"Subtopics: {', '.join(subtopic_list)}")

        gaps = list(knowledge_gaps)
        if gaps:
            lines.append("The learner has struggled with:")
            lines.extend(f"- {gap}" for gap in gaps)
            lines.append("Focus on these areas.")

        lines.append("Use exactly one of these shapes per question:")
        lines.extend(KIND_FORMATS[kind] for kind in kinds)
        return "\n".join(lines)

    def generate(
        self,
        topic: str,
        *,
        difficulty: int | None = None,
        proficiency: float = 50,
        kinds: Sequence[QuestionKind] = ("choice", "short_text"),
        count: int = 5,
        knowledge_gaps: Iterable[str] = (),
        subtopics: Iterable[str] = (),
        knowledge_area_id: str | None = None,
    ) -> list[Question]:
        """Generate questions for a topic.

        Args:
            topic: Topic name
            difficulty: Target difficulty; derived from ``proficiency`` when omitted
            proficiency: Learner proficiency (0-100) in the topic
            kinds: Question kinds to request
            count: Number of questions to request
            knowledge_gaps: Historical gap labels to focus on
            subtopics: Subtopic names to cover
            knowledge_area_id: Knowledge area tagged on questions that carry none

        Returns:
            Validated questions, or an empty list when generation failed
        """
        target = difficulty if difficulty is not None else difficulty_for_proficiency(proficiency)
        prompt = self.build_prompt(
            topic,
            difficulty=target,
            kinds=kinds,
            count=count,
            knowledge_gaps=knowledge_gaps,
            subtopics=subtopics,
        )
        request = CompletionRequest(
            model=self.model,
            prompt=prompt,
            system=SYSTEM_PROMPT,
            max_tokens=self.max_tokens,
        )

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.make_key(request.model, request.prompt, request.cache_options())
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Question generation cache hit for topic %r", topic)
                return self.parse_questions(
                    cached, difficulty=target, knowledge_area_id=knowledge_area_id
                )

        raw = self.client.complete(request)
        if raw is None:
            return []

        questions = self.parse_questions(
            raw, difficulty=target, knowledge_area_id=knowledge_area_id
        )
        if questions and self.cache is not None and cache_key is not None:
            self.cache.set(cache_key, raw)
        return questions

    def parse_questions(
        self,
        raw: str,
        *,
        difficulty: int,
        knowledge_area_id: str | None = None,
    ) -> list[Question]:
        """Parse and validate a model response.

        Returns:
            Validated questions, or an empty list if any record is invalid
        """
        try:
            payload = json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError as e:
            logger.warning("Generated questions are not valid JSON: %s", e)
            return []

        if isinstance(payload, Mapping):
            payload = payload.get("questions", [])
        if not isinstance(payload, list):
            logger.warning("Generated questions are not a list")
            return []

        records = [
            _complete_record(item, difficulty, knowledge_area_id)
            for item in payload
            if isinstance(item, Mapping)
        ]
        try:
            questions = question_list_adapter.validate_python(records)
            return [validate_question(question) for question in questions]
        except (ValidationError, MalformedQuestionError) as e:
            logger.warning("Discarding generated questions: %s", e)
            return []


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


def _complete_record(
    item: Mapping[str, Any], difficulty: int, knowledge_area_id: str | None
) -> dict[str, Any]:
    record = dict(item)
    record.setdefault("id", f"generated-{uuid4()}")
    record.setdefault("difficulty", difficulty)
    if knowledge_area_id is not None:
        record.setdefault("knowledge_area_id", knowledge_area_id)
    return record
