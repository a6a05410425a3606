"""
Knowledge Gap Analysis

Stateless aggregation of answer correctness by knowledge area. Used two ways:

- live: after a session, every knowledge area with an incorrect answer becomes
  a ``KnowledgeGap`` with a proficiency and recommended resources
- historical: over past submissions, areas whose error rate reaches the
  threshold are flagged per topic with a human-readable label
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING

from skillgauge.assessment.percentages import percentage, round_half_up
from skillgauge.core.schemas import (
    KnowledgeGap,
    QuestionResult,
    Resource,
    Submission,
    SubmissionQuestion,
)

if TYPE_CHECKING:
    from skillgauge.config import Settings


class ResourceCatalog:
    """Builds remediation resources and display names for knowledge areas."""

    def __init__(self, base_path: str = "/learn", area_names: Mapping[str, str] | None = None):
        """Initialize catalog.

        Args:
            base_path: URL prefix of learning pages
            area_names: Display names by area id (falls back to a generic label)
        """
        self.base_path = base_path.rstrip("/")
        self.area_names = dict(area_names or {})

    def name_for(self, area_id: str) -> str:
        return self.area_names.get(area_id, f"Knowledge Area {area_id}")

    def resources_for(self, area_id: str) -> tuple[Resource, ...]:
        return (
            Resource(
                id=f"resource-{area_id}-1",
                title=f"Resource for {self.name_for(area_id)}",
                type="article",
                url=f"{self.base_path}/{area_id}",
            ),
        )


class KnowledgeGapAggregator:
    """Groups answers by knowledge area and flags weak areas.

    Historical rules:
    1. Submissions scoring at or above ``score_cutoff`` are gap-free
    2. Remaining answers are bucketed by topic area ("general" when untagged)
    3. A bucket is a gap when incorrect / total >= ``error_rate_threshold``
    4. Flagged labels are grouped by the submission's topic id
    """

    SCORE_CUTOFF = 80.0
    ERROR_RATE_THRESHOLD = 0.5
    DEFAULT_AREA = "general"

    def __init__(
        self,
        *,
        score_cutoff: float | None = None,
        error_rate_threshold: float | None = None,
        resources: ResourceCatalog | None = None,
    ):
        self.score_cutoff = self.SCORE_CUTOFF if score_cutoff is None else score_cutoff
        self.error_rate_threshold = (
            self.ERROR_RATE_THRESHOLD if error_rate_threshold is None else error_rate_threshold
        )
        self.resources = resources or ResourceCatalog()

    @classmethod
    def from_settings(cls, settings: Settings) -> KnowledgeGapAggregator:
        """Create aggregator with thresholds from application settings."""
        return cls(
            score_cutoff=settings.GAP_SCORE_CUTOFF,
            error_rate_threshold=settings.GAP_ERROR_RATE_THRESHOLD,
            resources=ResourceCatalog(settings.RESOURCE_BASE_PATH),
        )

    # ------------------------------------------------------------------
    # Historical submissions
    # ------------------------------------------------------------------

    def bucket_error_rates(self, questions: Iterable[SubmissionQuestion]) -> dict[str, float]:
        """Error rate per topic area for buckets with at least one incorrect answer.

        Buckets keep the order in which their areas first appear.
        """
        totals: Counter[str] = Counter()
        incorrect: Counter[str] = Counter()

        for question in questions:
            area = question.topic_area or self.DEFAULT_AREA
            totals[area] += 1
            if not question.correct:
                incorrect[area] += 1

        return {area: incorrect[area] / totals[area] for area in totals if incorrect[area]}

    def submission_gaps(self, submission: Submission) -> list[str]:
        """Gap labels for one submission (empty if it scored at or above the cutoff)."""
        if submission.score >= self.score_cutoff:
            return []

        return [
            f"{area} ({round_half_up(rate * 100)}% error rate)"
            for area, rate in self.bucket_error_rates(submission.questions).items()
            if rate >= self.error_rate_threshold
        ]

    def extract_knowledge_gaps(self, submissions: Iterable[Submission]) -> dict[str, list[str]]:
        """Flag weak areas across historical submissions.

        Args:
            submissions: Past submissions, oldest first

        Returns:
            Gap labels keyed by topic id, taken from the latest submission on that
            topic that had any; topics without gaps are omitted
        """
        knowledge_gaps: dict[str, list[str]] = {}

        for submission in submissions:
            labels = self.submission_gaps(submission)
            if labels:
                knowledge_gaps[submission.topic_id] = labels

        return knowledge_gaps

    # ------------------------------------------------------------------
    # Live session
    # ------------------------------------------------------------------

    def gap_candidates(self, results: Iterable[QuestionResult]) -> list[str]:
        """Knowledge areas with an incorrect answer, in order of first miss."""
        areas: list[str] = []
        for result in results:
            area = result.knowledge_area_id
            if not result.correct and area and area not in areas:
                areas.append(area)
        return areas

    def area_proficiency(self, results: Iterable[QuestionResult], area_id: str) -> int:
        """Percentage of correct answers within one knowledge area."""
        in_area = [result for result in results if result.knowledge_area_id == area_id]
        return percentage(sum(result.correct for result in in_area), len(in_area))

    def session_gaps(self, results: Sequence[QuestionResult]) -> list[KnowledgeGap]:
        """Knowledge gaps for a session's result log.

        Args:
            results: Result log of one session

        Returns:
            One gap per area with an incorrect answer, with resources attached
        """
        return [
            KnowledgeGap(
                area_id=area_id,
                name=self.resources.name_for(area_id),
                proficiency=self.area_proficiency(results, area_id),
                recommended_resources=self.resources.resources_for(area_id),
            )
            for area_id in self.gap_candidates(results)
        ]
