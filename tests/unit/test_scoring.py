"""
Unit Tests for the Score & Report Builder

Deterministic folding of result logs into results and reports.
"""

from datetime import UTC, datetime

import pytest
from factories import assessment, choice, result

from skillgauge.assessment import ScoreReportBuilder
from skillgauge.assessment.scoring import compute_score, difficulty_breakdown, performance_level
from skillgauge.core.schemas import EndReason


@pytest.fixture
def builder():
    return ScoreReportBuilder()


@pytest.fixture
def three_questions():
    return assessment([choice("q1"), choice("q2"), choice("q3")])


class TestComputeScore:
    def test_two_of_three_rounds_to_67(self):
        results = [result("q1", True), result("q2", True), result("q3", False)]

        assert compute_score(results) == 67

    def test_half_rounds_up(self):
        results = [result(f"q{i}", i < 1) for i in range(8)]

        # 12.5% rounds up
        assert compute_score(results) == 13

    def test_no_answers_scores_zero(self):
        assert compute_score([]) == 0


class TestBuildResult:
    def test_scenario_two_correct_one_incorrect(self, builder, three_questions):
        results = [result("q1", True), result("q2", False), result("q3", True)]

        outcome = builder.build_result(assessment=three_questions, user_id="u1", results=results)

        assert outcome.score == 67
        assert len(outcome.question_results) == 3
        assert outcome.end_reason is EndReason.COMPLETED
        assert outcome.ended_early is False
        assert outcome.passed is None

    def test_replay_is_identical(self, builder, three_questions):
        results = [
            result("q1", True, area="loops"),
            result("q2", False, area="loops"),
            result("q3", False, area="arrays"),
        ]

        first = builder.build_result(assessment=three_questions, user_id="u1", results=results)
        second = builder.build_result(assessment=three_questions, user_id="u1", results=results)

        wall_clock = {"id", "completed_at"}
        assert first.model_dump(exclude=wall_clock) == second.model_dump(exclude=wall_clock)

    def test_explicit_id_and_timestamp(self, builder, three_questions):
        completed_at = datetime(2026, 1, 1, tzinfo=UTC)

        outcome = builder.build_result(
            assessment=three_questions,
            user_id="u1",
            results=[],
            result_id="r-1",
            completed_at=completed_at,
        )

        assert outcome.id == "r-1"
        assert outcome.completed_at == completed_at

    def test_passed_against_passing_score(self, builder):
        definition = assessment([choice("q1"), choice("q2")], passing_score=50)

        passed = builder.build_result(
            assessment=definition, user_id="u1", results=[result("q1", True), result("q2", False)]
        )
        failed = builder.build_result(
            assessment=definition, user_id="u1", results=[result("q1", False)]
        )

        assert passed.passed is True
        assert failed.passed is False

    def test_time_taken_without_limit_sums_questions(self, builder, three_questions):
        results = [result("q1", True, seconds=5), result("q2", True, seconds=7)]

        assert builder.time_taken(three_questions, results, elapsed_seconds=100) == 12

    def test_time_taken_with_limit_is_capped(self, builder):
        definition = assessment([choice("q1")], time_limit_minutes=1)

        assert builder.time_taken(definition, [], elapsed_seconds=42.4) == 42
        assert builder.time_taken(definition, [], elapsed_seconds=75) == 60

    def test_gaps_are_attached(self, builder, three_questions):
        results = [result("q1", False, area="loops"), result("q2", True, area="loops")]

        outcome = builder.build_result(assessment=three_questions, user_id="u1", results=results)

        assert [gap.area_id for gap in outcome.knowledge_gaps] == ["loops"]
        assert outcome.knowledge_gaps[0].proficiency == 50


class TestBuildReport:
    @pytest.mark.parametrize(
        ("score", "level"),
        [
            (100, "excellent"),
            (90, "excellent"),
            (89, "good"),
            (75, "good"),
            (74, "satisfactory"),
            (60, "satisfactory"),
            (59, "needs_improvement"),
            (0, "needs_improvement"),
        ],
    )
    def test_performance_levels(self, score, level):
        assert performance_level(score) == level

    def test_counts_and_average_time(self, builder, three_questions):
        results = [
            result("q1", True, seconds=10),
            result("q2", False, seconds=20),
            result("q3", True, seconds=31),
        ]
        outcome = builder.build_result(assessment=three_questions, user_id="u1", results=results)

        report = builder.build_report(outcome)

        assert report.correct_count == 2
        assert report.incorrect_count == 1
        assert report.average_time_seconds == 20.3
        assert report.performance_level == "satisfactory"

    def test_difficulty_breakdown_sorted_easiest_first(self):
        results = [
            result("q1", True, difficulty=4),
            result("q2", False, difficulty=2),
            result("q3", True, difficulty=2),
        ]

        breakdown = difficulty_breakdown(results)

        assert [(b.difficulty, b.correct, b.total, b.percentage) for b in breakdown] == [
            (2, 1, 2, 50),
            (4, 1, 1, 100),
        ]

    def test_timed_out_report_is_marked_early(self, builder, three_questions):
        outcome = builder.build_result(
            assessment=three_questions,
            user_id="u1",
            results=[],
            end_reason=EndReason.TIMED_OUT,
        )

        report = builder.build_report(outcome)

        assert report.ended_early is True
        assert report.average_time_seconds == 0.0
        assert report.message.startswith("Time ran out")

    def test_no_question_available_report_is_marked_early(self, builder, three_questions):
        outcome = builder.build_result(
            assessment=three_questions,
            user_id="u1",
            results=[result("q1", True)],
            end_reason=EndReason.NO_QUESTION_AVAILABLE,
        )

        report = builder.build_report(outcome)

        assert report.ended_early is True
        assert "ended early" in report.message
