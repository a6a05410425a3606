"""
Unit Tests for AI Question Generation

Prompt building, response parsing and validation, and cache use.
"""

import json

import pytest
from factories import FakeClock

from skillgauge.ai import CompletionRequest, QuestionGenerator, ResponseCache
from skillgauge.config import Settings

VALID_RESPONSE = json.dumps(
    [
        {
            "kind": "choice",
            "prompt": "Which keyword declares a block-scoped variable?",
            "options": [{"id": "a", "text": "var"}, {"id": "b", "text": "let"}],
            "correct_answer": "b",
            "explanation": "let is block scoped",
        },
        {
            "id": "gen-2",
            "kind": "short_text",
            "prompt": "What does typeof null return?",
            "correct_answer": "object",
            "difficulty": 4,
        },
    ]
)


class FakeAIClient:
    """Records requests and returns a canned completion."""

    def __init__(self, response: str | None):
        self.response = response
        self.requests: list[CompletionRequest] = []

    def complete(self, request: CompletionRequest) -> str | None:
        self.requests.append(request)
        return self.response


class TestQuestionGenerator:
    def test_generates_validated_questions(self):
        generator = QuestionGenerator(FakeAIClient(VALID_RESPONSE))

        questions = generator.generate("JavaScript", difficulty=2, knowledge_area_id="js")

        assert [q.kind for q in questions] == ["choice", "short_text"]
        assert questions[0].id.startswith("generated-")
        assert questions[0].difficulty == 2
        assert questions[0].knowledge_area_id == "js"
        assert questions[1].id == "gen-2"
        assert questions[1].difficulty == 4

    def test_difficulty_derived_from_proficiency(self):
        client = FakeAIClient(VALID_RESPONSE)
        generator = QuestionGenerator(client)

        questions = generator.generate("JavaScript", proficiency=10)

        assert "Difficulty: 1 on a scale" in client.requests[0].prompt
        assert questions[0].difficulty == 1

    def test_prompt_includes_gaps_and_kinds(self):
        client = FakeAIClient(VALID_RESPONSE)
        generator = QuestionGenerator(client)

        generator.generate(
            "JavaScript",
            difficulty=3,
            kinds=("code",),
            count=2,
            knowledge_gaps=["closures (75% error rate)"],
            subtopics=["Scope"],
        )

        prompt = client.requests[0].prompt
        assert "Number of questions: 2" in prompt
        assert "Question kinds: code" in prompt
        assert "- closures (75% error rate)" in prompt
        assert "Subtopics: Scope" in prompt
        assert '"kind": "code"' in prompt

    def test_code_fence_is_stripped(self):
        generator = QuestionGenerator(FakeAIClient(f"```json\n{VALID_RESPONSE}\n```"))

        assert len(generator.generate("JavaScript", difficulty=3)) == 2

    def test_wrapped_questions_object(self):
        wrapped = json.dumps({"questions": json.loads(VALID_RESPONSE)})
        generator = QuestionGenerator(FakeAIClient(wrapped))

        assert len(generator.generate("JavaScript", difficulty=3)) == 2

    @pytest.mark.parametrize(
        "response",
        [
            None,
            "not json at all",
            json.dumps("a string"),
            json.dumps([{"kind": "essay", "prompt": "?"}]),
            json.dumps(
                [
                    {
                        "kind": "choice",
                        "prompt": "?",
                        "options": [{"id": "a", "text": "A"}],
                        "correct_answer": "z",
                    }
                ]
            ),
        ],
        ids=["no-completion", "invalid-json", "not-a-list", "unknown-kind", "malformed-choice"],
    )
    def test_invalid_output_yields_empty_list(self, response):
        generator = QuestionGenerator(FakeAIClient(response))

        assert generator.generate("JavaScript", difficulty=3) == []

    def test_cache_hit_skips_client(self):
        client = FakeAIClient(VALID_RESPONSE)
        cache = ResponseCache(ttl_seconds=60, clock=FakeClock())
        generator = QuestionGenerator(client, cache)

        first = generator.generate("JavaScript", difficulty=3)
        second = generator.generate("JavaScript", difficulty=3)

        assert len(client.requests) == 1
        assert len(first) == len(second) == 2
        assert len(cache) == 1

    def test_different_requests_are_cached_separately(self):
        client = FakeAIClient(VALID_RESPONSE)
        generator = QuestionGenerator(client, ResponseCache(clock=FakeClock()))

        generator.generate("JavaScript", difficulty=3)
        generator.generate("JavaScript", difficulty=4)

        assert len(client.requests) == 2

    def test_invalid_output_is_not_cached(self):
        client = FakeAIClient("not json")
        cache = ResponseCache(clock=FakeClock())
        generator = QuestionGenerator(client, cache)

        generator.generate("JavaScript", difficulty=3)
        generator.generate("JavaScript", difficulty=3)

        assert len(client.requests) == 2
        assert len(cache) == 0

    def test_cache_entry_expires(self):
        clock = FakeClock()
        client = FakeAIClient(VALID_RESPONSE)
        generator = QuestionGenerator(client, ResponseCache(ttl_seconds=60, clock=clock))

        generator.generate("JavaScript", difficulty=3)
        clock.advance(61)
        generator.generate("JavaScript", difficulty=3)

        assert len(client.requests) == 2

    def test_from_settings_uses_configured_model_and_cache(self):
        client = FakeAIClient(VALID_RESPONSE)
        config = Settings(AI_MODEL="claude-test", AI_MAX_TOKENS=512, AI_CACHE_MAX_ENTRIES=3)
        generator = QuestionGenerator.from_settings(config, client)

        generator.generate("JavaScript", difficulty=3)

        assert generator.client is client
        assert client.requests[0].model == "claude-test"
        assert client.requests[0].max_tokens == 512
        assert generator.cache is not None
        assert generator.cache.max_entries == 3
        assert len(generator.cache) == 1
