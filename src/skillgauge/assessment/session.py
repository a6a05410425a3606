"""
Assessment Session Controller

Drives one learner through one assessment:

1. START: present the first question (adaptive sessions select it at the
   start difficulty)
2. ANSWER: grade the answer, append a ``QuestionResult`` with the time spent
   on the question, walk the difficulty when adaptive
3. ADVANCE: present the next question, or complete once every question has
   been asked or the adaptive pool is exhausted
4. TIMEOUT: the session timer forces completion with the results so far

A session is driven by a single actor and never revisits a question it has
advanced past. Completion happens exactly once; later triggers return the
existing result without notifying again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol
from uuid import uuid4

from skillgauge.assessment.difficulty import next_difficulty
from skillgauge.assessment.errors import (
    AssessmentError,
    NoQuestionAvailableError,
    QuestionMismatchError,
    SessionCompletedError,
)
from skillgauge.assessment.evaluator import evaluate
from skillgauge.assessment.gap_analysis import KnowledgeGapAggregator
from skillgauge.assessment.percentages import round_half_up
from skillgauge.assessment.scoring import ScoreReportBuilder
from skillgauge.assessment.selection import QuestionSelector
from skillgauge.core.schemas import (
    Assessment,
    AssessmentResult,
    EndReason,
    Question,
    QuestionResult,
)

logger = logging.getLogger(__name__)

DEFAULT_START_DIFFICULTY = 3


class Selector(Protocol):
    """Anything that can pick the next adaptive question."""

    def select(
        self,
        target_difficulty: int,
        exclude_ids: Collection[str] = (),
        area_filter: Collection[str] | None = None,
    ) -> Question: ...


class SessionStatus(StrEnum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class AnswerOutcome:
    """What happened after an answer was submitted."""

    question_id: str
    correct: bool
    next_question: Question | None
    completed: bool


class SessionTimer:
    """One-shot timer on the running event loop.

    Fires its callback at most once and never after ``cancel()``.
    """

    def __init__(
        self,
        seconds: float,
        callback: Callable[[], Any],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.seconds = seconds
        self.callback = callback
        self.loop = loop
        self.fired = False
        self.cancelled = False
        self._handle: asyncio.TimerHandle | None = None

    def start(self) -> SessionTimer:
        """Arm the timer. Must be called from within a running event loop."""
        if self._handle is not None:
            return self
        loop = self.loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.seconds, self._fire)
        return self

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    @property
    def active(self) -> bool:
        return self._handle is not None and not (self.fired or self.cancelled)

    def _fire(self) -> None:
        if self.fired or self.cancelled:
            return
        self.fired = True
        self.callback()


class AssessmentSession:
    """Stateful controller for one run of a learner through an assessment.

    The assessment must already be validated (see ``validate_assessment``).
    """

    def __init__(
        self,
        assessment: Assessment,
        user_id: str,
        *,
        session_id: str | None = None,
        selector: Selector | None = None,
        builder: ScoreReportBuilder | None = None,
        start_difficulty: int = DEFAULT_START_DIFFICULTY,
        area_filter: Collection[str] | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_complete: Callable[[AssessmentResult], None] | None = None,
    ):
        """Initialize session (not yet started).

        Args:
            assessment: Validated assessment definition
            user_id: Learner taking the assessment
            session_id: Explicit id (fresh UUID by default)
            selector: Adaptive question selector (stable selector over the pool by default)
            builder: Score & report builder
            start_difficulty: First target difficulty of adaptive sessions
            area_filter: Knowledge areas adaptive selection is restricted to
            clock: Monotonic clock in seconds
            on_complete: Called once with the result when the session completes
        """
        self.id = session_id or str(uuid4())
        self.assessment = assessment
        self.user_id = user_id
        self.selector = selector or QuestionSelector(
            assessment.questions, difficulty_range=assessment.difficulty_range
        )
        self.builder = builder or ScoreReportBuilder(KnowledgeGapAggregator())
        self.area_filter = tuple(area_filter) if area_filter else None
        self.clock = clock
        self.on_complete = on_complete

        self.status = SessionStatus.IN_PROGRESS
        self.current_difficulty: int | None = (
            assessment.difficulty_range.clamp(start_difficulty) if assessment.adaptive else None
        )
        self.current_question: Question | None = None
        self.result: AssessmentResult | None = None
        self.end_reason: EndReason | None = None

        self._results: list[QuestionResult] = []
        self._started_at: float | None = None
        self._presented_at: float | None = None
        self._timer: SessionTimer | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def results(self) -> tuple[QuestionResult, ...]:
        """Result log so far (read-only view)."""
        return tuple(self._results)

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def answered_ids(self) -> list[str]:
        return [result.question_id for result in self._results]

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return self.clock() - self._started_at

    @property
    def remaining_seconds(self) -> float | None:
        """Seconds left before timeout (None without a time limit)."""
        limit = self.assessment.time_limit_seconds
        if limit is None:
            return None
        return max(0.0, limit - self.elapsed_seconds)

    @property
    def gap_candidates(self) -> list[str]:
        """Knowledge areas missed so far in this session."""
        return self.builder.gap_aggregator.gap_candidates(self._results)

    @property
    def timer(self) -> SessionTimer | None:
        return self._timer

    def attach_timer(self, timer: SessionTimer) -> None:
        """Attach the session-wide timer; it is cancelled on completion."""
        self._timer = timer

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> Question | None:
        """Start the session and present the first question.

        Returns:
            First question, or None if the session completed immediately
        """
        if self.completed:
            raise SessionCompletedError(f"Session {self.id} is already completed")
        if self.started:
            return self.current_question

        self._started_at = self.clock()
        logger.info(
            "Session %s started: assessment=%s user=%s adaptive=%s",
            self.id,
            self.assessment.id,
            self.user_id,
            self.assessment.adaptive,
        )
        self._advance()
        return self.current_question

    def submit_answer(self, question_id: str, answer: Any) -> AnswerOutcome:
        """Grade the answer to the presented question and advance.

        Args:
            question_id: Id of the question being answered (must be the current one)
            answer: Raw answer; malformed shapes count as incorrect

        Raises:
            SessionCompletedError: If the session already completed
            QuestionMismatchError: If ``question_id`` is not the presented question
        """
        if self.completed:
            raise SessionCompletedError(f"Session {self.id} is already completed")
        if not self.started or self.current_question is None:
            raise AssessmentError(f"Session {self.id} has not started")

        question = self.current_question
        if question_id != question.id:
            raise QuestionMismatchError(question.id, question_id)

        correct = evaluate(question, answer)
        presented_at = self._presented_at if self._presented_at is not None else self.clock()
        self._results.append(
            QuestionResult(
                question_id=question.id,
                correct=correct,
                user_answer=answer,
                time_taken_seconds=round_half_up(max(0.0, self.clock() - presented_at)),
                difficulty=question.difficulty,
                knowledge_area_id=question.knowledge_area_id,
            )
        )

        if self.current_difficulty is not None:
            self.current_difficulty = next_difficulty(
                self.current_difficulty, correct, self.assessment.difficulty_range
            )

        self._advance()
        return AnswerOutcome(
            question_id=question.id,
            correct=correct,
            next_question=self.current_question,
            completed=self.completed,
        )

    def expire(self) -> AssessmentResult:
        """Force completion because the session time ran out.

        Unanswered questions are simply absent from the result log.
        Safe to call more than once.
        """
        if self.result is not None:
            return self.result
        logger.info("Session %s timed out after %d answers", self.id, len(self._results))
        return self._complete(EndReason.TIMED_OUT)

    def _advance(self) -> None:
        if len(self._results) >= len(self.assessment.questions):
            self._complete(EndReason.COMPLETED)
            return

        if self.current_difficulty is None:
            self._present(self.assessment.questions[len(self._results)])
            return

        try:
            question = self.selector.select(
                self.current_difficulty, self.answered_ids, self.area_filter
            )
        except NoQuestionAvailableError as exc:
            logger.warning("Session %s ending early: %s", self.id, exc)
            self._complete(EndReason.NO_QUESTION_AVAILABLE)
            return
        self._present(question)

    def _present(self, question: Question) -> None:
        self.current_question = question
        self._presented_at = self.clock()

    def _complete(self, reason: EndReason) -> AssessmentResult:
        if self.result is not None:
            return self.result

        if self._timer is not None:
            self._timer.cancel()

        self.result = self.builder.build_result(
            assessment=self.assessment,
            user_id=self.user_id,
            results=self._results,
            end_reason=reason,
            elapsed_seconds=self.elapsed_seconds,
        )
        self.status = SessionStatus.COMPLETED
        self.end_reason = reason
        self.current_question = None
        logger.info(
            "Session %s completed (%s): score=%d answered=%d",
            self.id,
            reason,
            self.result.score,
            len(self._results),
        )

        if self.on_complete is not None:
            self.on_complete(self.result)
        return self.result
