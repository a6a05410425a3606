"""
Session Manager

Hosts live assessment sessions for the API layer:

- loads and validates the assessment through a repository
- arms the session-wide timer when the assessment has a time limit
- persists each terminal result once, followed by one knowledge area
  upsert per gap, in a background task
- releases a session as soon as it completes; only its result is kept,
  in a bounded map whose entries expire

Sessions share no mutable state. Persistence is at-most-once: failures are
logged and not retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Collection
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from cachetools import TTLCache

from skillgauge.assessment.errors import SessionCompletedError, SessionNotFoundError
from skillgauge.assessment.gap_analysis import KnowledgeGapAggregator
from skillgauge.assessment.scoring import ScoreReportBuilder
from skillgauge.assessment.selection import QuestionSelector
from skillgauge.assessment.session import AnswerOutcome, AssessmentSession, SessionTimer
from skillgauge.core.schemas import AssessmentReport, AssessmentResult

if TYPE_CHECKING:
    from skillgauge.config import Settings
    from skillgauge.repository import AssessmentRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], AbstractAsyncContextManager["AssessmentRepository"]]


class SessionManager:
    """Registry of assessment sessions with timers and result persistence."""

    def __init__(
        self,
        repository_factory: RepositoryFactory,
        *,
        settings: Settings | None = None,
        builder: ScoreReportBuilder | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize manager.

        Args:
            repository_factory: Opens a repository scope for loading and persisting
            settings: Engine settings (global settings by default)
            builder: Score & report builder (configured from settings by default)
            clock: Monotonic clock that ages retained results
        """
        if settings is None:
            from skillgauge.config import settings as default_settings

            settings = default_settings

        self.repository_factory = repository_factory
        self.settings = settings
        self.builder = builder or ScoreReportBuilder(KnowledgeGapAggregator.from_settings(settings))
        self.sessions: dict[str, AssessmentSession] = {}
        self.results: TTLCache[str, AssessmentResult] = TTLCache(
            maxsize=settings.SESSION_RESULT_MAX_ENTRIES,
            ttl=settings.SESSION_RESULT_TTL_SECONDS,
            timer=clock,
        )
        self._tasks: set[asyncio.Task[None]] = set()

    async def start_session(
        self,
        assessment_id: str,
        user_id: str,
        *,
        start_difficulty: int | None = None,
        area_filter: Collection[str] | None = None,
    ) -> AssessmentSession:
        """Load an assessment and start a session on it.

        Args:
            assessment_id: Assessment to run
            user_id: Learner taking it
            start_difficulty: First adaptive target (configured default otherwise)
            area_filter: Restrict adaptive selection to these knowledge areas

        Returns:
            Started session (already completed if nothing could be presented)

        Raises:
            AssessmentNotFoundError: Unknown assessment
            MalformedQuestionError: The assessment fails validation
        """
        async with self.repository_factory() as repository:
            assessment = await repository.load_assessment(assessment_id)

        selector = QuestionSelector(
            assessment.questions,
            policy=self.settings.QUESTION_SELECTION_POLICY,
            seed=self.settings.QUESTION_SELECTION_SEED,
            difficulty_range=assessment.difficulty_range,
        )
        session_id = str(uuid4())
        session = AssessmentSession(
            assessment,
            user_id,
            session_id=session_id,
            selector=selector,
            builder=self.builder,
            start_difficulty=start_difficulty or self.settings.DEFAULT_START_DIFFICULTY,
            area_filter=area_filter,
            on_complete=lambda result: self._finish(session_id, result),
        )
        self.sessions[session.id] = session

        session.start()
        limit = assessment.time_limit_seconds
        if limit is not None and not session.completed:
            session.attach_timer(SessionTimer(limit, session.expire).start())

        return session

    @property
    def live_count(self) -> int:
        return len(self.sessions)

    @property
    def pending_persistence(self) -> int:
        return len(self._tasks)

    def get(self, session_id: str) -> AssessmentSession:
        """Live session by id.

        Raises:
            SessionCompletedError: The session completed (its result is retained)
            SessionNotFoundError: Unknown session, or its result has expired
        """
        session = self.sessions.get(session_id)
        if session is not None:
            return session
        if session_id in self.results:
            raise SessionCompletedError(f"Session {session_id} is already completed")
        raise SessionNotFoundError(f"Session not found with ID: {session_id}")

    def result(self, session_id: str) -> AssessmentResult | None:
        """Retained result of a completed session, None while it is live."""
        result = self.results.get(session_id)
        if result is None and session_id not in self.sessions:
            raise SessionNotFoundError(f"Session not found with ID: {session_id}")
        return result

    def submit_answer(self, session_id: str, question_id: str, answer: Any) -> AnswerOutcome:
        return self.get(session_id).submit_answer(question_id, answer)

    def expire(self, session_id: str) -> AssessmentResult:
        result = self.result(session_id)
        if result is not None:
            return result
        return self.get(session_id).expire()

    def report(self, session_id: str) -> AssessmentReport | None:
        """Report of a completed session, None while it is still in progress."""
        result = self.result(session_id)
        if result is None:
            return None
        return self.builder.build_report(result)

    async def drain(self) -> None:
        """Wait for all scheduled persistence tasks to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def close(self) -> None:
        """Cancel timers of live sessions and flush pending persistence."""
        for session in list(self.sessions.values()):
            if session.timer is not None:
                session.timer.cancel()
        await self.drain()

    def _finish(self, session_id: str, result: AssessmentResult) -> None:
        self.sessions.pop(session_id, None)
        self.results[session_id] = result
        self._schedule_persist(result)

    def _schedule_persist(self, result: AssessmentResult) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("No running event loop; result %s was not persisted", result.id)
            return

        task = loop.create_task(self._persist(result))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _persist(self, result: AssessmentResult) -> None:
        try:
            async with self.repository_factory() as repository:
                await repository.persist_result(result)
                for gap in result.knowledge_gaps:
                    await repository.persist_knowledge_area(
                        result.user_id, gap.area_id, gap.proficiency
                    )
        except Exception:
            logger.exception("Failed to persist result %s for user %s", result.id, result.user_id)
            return

        logger.info(
            "Persisted result %s (%d knowledge gaps) for user %s",
            result.id,
            len(result.knowledge_gaps),
            result.user_id,
        )
