"""
AI Completion Client with Provider Fallback

Providers are tried in order: Anthropic, then Grok (OpenAI-compatible).
When every configured provider fails the client returns None and callers
fall back to authored content.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

GROK_BASE_URL = "https://api.x.ai/v1"
GROK_MODEL = "grok-3"


@dataclass(frozen=True)
class CompletionRequest:
    """One single-turn completion request."""

    model: str
    prompt: str
    system: str = ""
    max_tokens: int = 2048
    temperature: float = 0.7
    metadata: dict[str, Any] = field(default_factory=dict)

    def cache_options(self) -> dict[str, Any]:
        """Request options that change the response (used in cache keys)."""
        return {
            "system": self.system,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            **self.metadata,
        }


class AIClient:
    """Completion client that tries each configured provider in turn."""

    def __init__(
        self,
        *,
        anthropic_api_key: str | None = None,
        grok_api_key: str | None = None,
        grok_model: str = GROK_MODEL,
    ):
        """Initialize AI client with available API keys.

        Args:
            anthropic_api_key: Anthropic Claude API key (priority 1)
            grok_api_key: xAI Grok API key (priority 2)
            grok_model: Model used on the Grok endpoint regardless of the requested model
        """
        self.anthropic_api_key = anthropic_api_key
        self.grok_api_key = grok_api_key
        self.grok_model = grok_model

    @property
    def available(self) -> bool:
        return bool(self.anthropic_api_key or self.grok_api_key)

    def providers(self) -> list[tuple[str, Callable[[CompletionRequest], str | None]]]:
        """Configured providers in fallback order."""
        chain: list[tuple[str, Callable[[CompletionRequest], str | None]]] = []
        if self.anthropic_api_key:
            chain.append(("anthropic", self._complete_anthropic))
        if self.grok_api_key:
            chain.append(("grok", self._complete_grok))
        return chain

    def complete(self, request: CompletionRequest) -> str | None:
        """Run a completion against the first provider that answers.

        Returns:
            Generated text, or None if no provider is configured or all failed
        """
        for name, provider in self.providers():
            try:
                text = provider(request)
            except Exception as e:
                logger.warning("%s completion failed: %s", name, e)
                continue

            if text:
                logger.info("AI completion successful via %s", name)
                return text
            logger.warning("%s returned an empty completion", name)

        logger.warning("All AI providers failed or unavailable")
        return None

    def _complete_anthropic(self, request: CompletionRequest) -> str | None:
        from anthropic import Anthropic

        client = Anthropic(api_key=self.anthropic_api_key)
        response = client.messages.create(
            model=request.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            system=request.system,
            messages=[{"role": "user", "content": request.prompt}],
        )

        for block in response.content:
            text = getattr(block, "text", None)
            if text:
                return text
        return None

    def _complete_grok(self, request: CompletionRequest) -> str | None:
        from openai import OpenAI

        client = OpenAI(api_key=self.grok_api_key, base_url=GROK_BASE_URL)
        messages: list[dict[str, Any]] = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.prompt})

        response = client.chat.completions.create(
            model=self.grok_model,
            messages=messages,  # type: ignore[arg-type]
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

        if response.choices:
            return response.choices[0].message.content
        return None


def get_ai_client() -> AIClient:
    """Get configured AI client instance.

    Returns:
        AIClient with available API keys from settings
    """
    from skillgauge.config import settings

    return AIClient(
        anthropic_api_key=settings.ANTHROPIC_API_KEY or None,
        grok_api_key=settings.GROK_API_KEY or None,
    )
