"""
Score & Report Builder

Folds a session's result log into the terminal ``AssessmentResult`` and the
remediation report shown to the learner.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime
from uuid import uuid4

from skillgauge.assessment.gap_analysis import KnowledgeGapAggregator
from skillgauge.assessment.percentages import percentage, round_half_up
from skillgauge.core.schemas import (
    Assessment,
    AssessmentReport,
    AssessmentResult,
    DifficultyBreakdown,
    EndReason,
    QuestionResult,
)
from skillgauge.core.schemas.assessments import PerformanceLevel

# Lower score bound for each band, checked top-down
PERFORMANCE_BANDS: list[tuple[int, PerformanceLevel]] = [
    (90, "excellent"),
    (75, "good"),
    (60, "satisfactory"),
]

PERFORMANCE_MESSAGES: dict[PerformanceLevel, str] = {
    "excellent": "Excellent work! You have a strong understanding of this topic.",
    "good": "Good job! You have a solid foundation in this topic.",
    "satisfactory": "You passed the basics. Review the areas you missed to strengthen them.",
    "needs_improvement": "You should review this topic more thoroughly.",
}


def compute_score(results: Sequence[QuestionResult]) -> int:
    """Percentage of answered questions that were correct (0 when none answered)."""
    return percentage(sum(result.correct for result in results), len(results))


def performance_level(score: float) -> PerformanceLevel:
    """Narrative band for a score: >=90 excellent, >=75 good, >=60 satisfactory."""
    for lower_bound, level in PERFORMANCE_BANDS:
        if score >= lower_bound:
            return level
    return "needs_improvement"


def difficulty_breakdown(results: Sequence[QuestionResult]) -> list[DifficultyBreakdown]:
    """Correct/total per difficulty level, easiest first."""
    tallies: dict[int, list[int]] = defaultdict(lambda: [0, 0])
    for result in results:
        tally = tallies[result.difficulty]
        tally[0] += int(result.correct)
        tally[1] += 1

    return [
        DifficultyBreakdown(
            difficulty=difficulty,
            correct=correct,
            total=total,
            percentage=percentage(correct, total),
        )
        for difficulty, (correct, total) in sorted(tallies.items())
    ]


class ScoreReportBuilder:
    """Builds results and reports from immutable result logs.

    Building is deterministic: the same log, end reason and elapsed time give
    the same result apart from ``id`` and ``completed_at``.
    """

    def __init__(self, gap_aggregator: KnowledgeGapAggregator | None = None):
        self.gap_aggregator = gap_aggregator or KnowledgeGapAggregator()

    def time_taken(
        self,
        assessment: Assessment,
        results: Sequence[QuestionResult],
        elapsed_seconds: float | None = None,
    ) -> int:
        """Total session time in whole seconds.

        With a time limit this is ``limit - remaining`` (elapsed, capped at the
        limit); otherwise the sum of per-question times.
        """
        limit = assessment.time_limit_seconds
        if limit is not None and elapsed_seconds is not None:
            remaining = max(0.0, limit - elapsed_seconds)
            return round_half_up(limit - remaining)
        return sum(result.time_taken_seconds for result in results)

    def build_result(
        self,
        *,
        assessment: Assessment,
        user_id: str,
        results: Sequence[QuestionResult],
        end_reason: EndReason = EndReason.COMPLETED,
        elapsed_seconds: float | None = None,
        result_id: str | None = None,
        completed_at: datetime | None = None,
    ) -> AssessmentResult:
        """Fold a result log into the terminal assessment result.

        Args:
            assessment: Assessment the session ran
            user_id: Learner
            results: Result log, in answer order
            end_reason: Why the session ended
            elapsed_seconds: Wall time since start (used with a time limit)
            result_id: Explicit id (fresh UUID by default)
            completed_at: Explicit completion time (now, UTC, by default)
        """
        score = compute_score(results)
        passed = None if assessment.passing_score is None else score >= assessment.passing_score

        return AssessmentResult(
            id=result_id or str(uuid4()),
            user_id=user_id,
            assessment_id=assessment.id,
            score=score,
            time_taken_seconds=self.time_taken(assessment, results, elapsed_seconds),
            completed_at=completed_at or datetime.now(UTC),
            question_results=tuple(results),
            knowledge_gaps=tuple(self.gap_aggregator.session_gaps(results)),
            end_reason=end_reason,
            passed=passed,
        )

    def build_report(self, result: AssessmentResult) -> AssessmentReport:
        """Summarize a result for display: band, tallies, per-difficulty breakdown."""
        answered = len(result.question_results)
        correct = sum(question.correct for question in result.question_results)
        total_time = sum(question.time_taken_seconds for question in result.question_results)
        level = performance_level(result.score)

        message = PERFORMANCE_MESSAGES[level]
        if result.end_reason is EndReason.TIMED_OUT:
            message = f"Time ran out before the assessment was finished. {message}"
        elif result.end_reason is EndReason.NO_QUESTION_AVAILABLE:
            message = f"The assessment ended early: no more questions were available. {message}"

        return AssessmentReport(
            result=result,
            performance_level=level,
            correct_count=correct,
            incorrect_count=answered - correct,
            average_time_seconds=round(total_time / answered, 1) if answered else 0.0,
            difficulty_breakdown=tuple(difficulty_breakdown(result.question_results)),
            ended_early=result.ended_early,
            message=message,
        )
