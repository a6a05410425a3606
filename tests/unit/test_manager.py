"""
Unit Tests for the Session Manager

Session hosting, timers and at-most-once result persistence against the
in-memory repository.
"""

import asyncio
import logging

import pytest
from factories import FakeClock, assessment, choice, repository_scope

from skillgauge.assessment import (
    AssessmentNotFoundError,
    MalformedQuestionError,
    SessionCompletedError,
    SessionManager,
    SessionNotFoundError,
)
from skillgauge.config import Settings
from skillgauge.core.schemas import EndReason
from skillgauge.repository import InMemoryAssessmentRepository


@pytest.fixture
def repository():
    return InMemoryAssessmentRepository(
        [
            assessment(
                [
                    choice("q1", 3, area="loops"),
                    choice("q2", 4, area="arrays"),
                    choice("q3", 2, area="loops"),
                ],
                assessment_id="adaptive",
                adaptive=True,
            ),
            assessment(
                [choice("t1"), choice("t2")], assessment_id="timed", time_limit_minutes=1 / 60
            ),
            assessment([choice("s1")], assessment_id="single"),
            assessment([choice("bad", correct="z")], assessment_id="broken"),
        ]
    )


@pytest.fixture
def manager(repository):
    return SessionManager(repository_scope(repository), settings=Settings())


class TestSessionManager:
    async def test_start_presents_first_question(self, manager):
        session = await manager.start_session("adaptive", "user-1")

        assert session.current_question.id == "q1"
        assert manager.get(session.id) is session

    async def test_unknown_assessment(self, manager):
        with pytest.raises(AssessmentNotFoundError):
            await manager.start_session("missing", "user-1")

    async def test_malformed_assessment_does_not_start(self, manager):
        with pytest.raises(MalformedQuestionError):
            await manager.start_session("broken", "user-1")

        assert manager.sessions == {}

    async def test_unknown_session(self, manager):
        with pytest.raises(SessionNotFoundError):
            manager.get("nope")

    async def test_result_and_gaps_are_persisted_once(self, manager, repository):
        session = await manager.start_session("adaptive", "user-1")

        manager.submit_answer(session.id, "q1", "b")
        manager.submit_answer(session.id, "q3", "a")
        manager.submit_answer(session.id, "q2", "a")
        manager.expire(session.id)
        await manager.drain()

        assert list(repository.results) == [session.result.id]
        assert manager.pending_persistence == 0
        assert manager.live_count == 0
        assert manager.sessions == {}
        assert manager.result(session.id) == session.result
        stored = repository.proficiencies[("user-1", "loops")]
        assert stored.proficiency == 50

    async def test_sessions_are_independent(self, manager):
        first = await manager.start_session("adaptive", "user-1")
        second = await manager.start_session("adaptive", "user-2")

        manager.submit_answer(first.id, "q1", "a")

        assert first.id != second.id
        assert len(first.results) == 1
        assert second.results == ()
        assert second.current_question.id == "q1"
        assert manager.live_count == 2

    async def test_report_only_after_completion(self, manager):
        session = await manager.start_session("adaptive", "user-1")

        assert manager.report(session.id) is None

        manager.expire(session.id)
        report = manager.report(session.id)

        assert report.ended_early is True
        assert report.result.end_reason is EndReason.TIMED_OUT

    async def test_timer_expires_session(self, manager, repository):
        session = await manager.start_session("timed", "user-1")

        assert session.timer is not None
        await asyncio.sleep(1.2)
        await manager.drain()

        assert session.completed is True
        assert session.result.end_reason is EndReason.TIMED_OUT
        assert list(repository.results) == [session.result.id]

    async def test_close_cancels_live_timers(self, manager):
        session = await manager.start_session("timed", "user-1")

        await manager.close()

        assert session.timer.cancelled is True

    async def test_persistence_failure_is_logged_not_raised(self, repository, caplog):
        class FailingRepository(InMemoryAssessmentRepository):
            async def persist_result(self, result):
                raise RuntimeError("database unavailable")

        failing = FailingRepository(repository.assessments.values())
        manager = SessionManager(repository_scope(failing), settings=Settings())
        session = await manager.start_session("adaptive", "user-1")

        with caplog.at_level(logging.ERROR, logger="skillgauge.assessment.manager"):
            manager.expire(session.id)
            await manager.drain()

        assert "Failed to persist result" in caplog.text
        assert failing.results == {}

    async def test_random_policy_from_settings(self, repository):
        manager = SessionManager(
            repository_scope(repository),
            settings=Settings(QUESTION_SELECTION_POLICY="random", QUESTION_SELECTION_SEED=3),
        )

        session = await manager.start_session("adaptive", "user-1")

        assert session.selector.policy == "random"
        assert session.current_question.id == "q1"

    async def test_completed_sessions_are_released(self, manager):
        sessions = [await manager.start_session("single", f"user-{i}") for i in range(20)]
        for session in sessions:
            manager.submit_answer(session.id, "s1", "a")
        await manager.drain()

        assert len(manager.sessions) == 0
        assert len(manager.results) == 20
        assert manager.report(sessions[0].id).result.score == 100
        with pytest.raises(SessionCompletedError):
            manager.submit_answer(sessions[0].id, "s1", "a")

    async def test_expire_after_completion_returns_retained_result(self, manager):
        session = await manager.start_session("single", "user-1")
        manager.submit_answer(session.id, "s1", "b")

        assert manager.expire(session.id) == session.result
        assert manager.expire(session.id).end_reason is EndReason.COMPLETED

    async def test_retained_results_are_bounded(self, repository):
        manager = SessionManager(
            repository_scope(repository), settings=Settings(SESSION_RESULT_MAX_ENTRIES=2)
        )
        sessions = [await manager.start_session("single", "user-1") for _ in range(3)]
        for session in sessions:
            manager.submit_answer(session.id, "s1", "a")
        await manager.drain()

        assert len(manager.results) == 2
        with pytest.raises(SessionNotFoundError):
            manager.report(sessions[0].id)
        assert manager.report(sessions[2].id) is not None

    async def test_retained_results_expire(self, repository):
        clock = FakeClock()
        manager = SessionManager(
            repository_scope(repository),
            settings=Settings(SESSION_RESULT_TTL_SECONDS=60),
            clock=clock,
        )
        session = await manager.start_session("single", "user-1")
        manager.submit_answer(session.id, "s1", "a")
        await manager.drain()

        clock.advance(59)
        assert manager.result(session.id) == session.result

        clock.advance(1)
        with pytest.raises(SessionNotFoundError):
            manager.result(session.id)
        assert len(repository.results) == 1
