"""
AI Response Cache

Explicit in-memory cache for generated content, keyed by a hash of the
request. Backed by ``cachetools.TTLCache``: entries expire after a TTL and,
when the cache is full, the least recently used entry is evicted.
Instances are passed to the callers that need them; there is no module-level
cache.
"""

from __future__ import annotations

import hashlib
import json
import time
from collections.abc import Callable, Mapping
from typing import Any

from cachetools import TTLCache


class ResponseCache:
    """Bounded TTL cache of raw model responses."""

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 256,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: TTLCache[str, str] = TTLCache(
            maxsize=max_entries, ttl=ttl_seconds, timer=clock
        )

    @staticmethod
    def make_key(model: str, prompt: str, options: Mapping[str, Any] | None = None) -> str:
        """Content hash of a generation request."""
        payload = json.dumps(
            {"model": model, "prompt": prompt, "options": dict(options or {})},
            sort_keys=True,
            default=str,
        )
        return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
