"""
Knowledge Map

Per-user view of every knowledge area: the stored proficiency plus a
needs-review flag derived from the user's most recent assessment results.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from skillgauge.core.schemas import (
    AssessmentResult,
    KnowledgeArea,
    KnowledgeAreaProficiency,
    KnowledgeMapArea,
    UserKnowledgeMap,
)

NEEDS_REVIEW_SCORE_THRESHOLD = 70.0


def areas_needing_review(
    recent_results: Iterable[AssessmentResult],
    topic_by_assessment: Mapping[str, str | None],
    threshold: float = NEEDS_REVIEW_SCORE_THRESHOLD,
) -> set[str]:
    """Knowledge areas flagged by recent results.

    An area needs review when a recent result on that topic scored below
    ``threshold``, or when any recent incorrect answer is tagged with it.

    Args:
        recent_results: The user's most recent results
        topic_by_assessment: Topic id of each assessment
        threshold: Score below which the assessment's topic is flagged

    Returns:
        Ids of the flagged areas
    """
    flagged: set[str] = set()
    for result in recent_results:
        topic_id = topic_by_assessment.get(result.assessment_id)
        if topic_id and result.score < threshold:
            flagged.add(topic_id)
        flagged.update(
            question.knowledge_area_id
            for question in result.question_results
            if not question.correct and question.knowledge_area_id
        )
    return flagged


def build_knowledge_map(
    user_id: str,
    areas: Iterable[KnowledgeArea],
    proficiencies: Iterable[KnowledgeAreaProficiency],
    recent_results: Iterable[AssessmentResult] = (),
    topic_by_assessment: Mapping[str, str | None] | None = None,
    *,
    threshold: float = NEEDS_REVIEW_SCORE_THRESHOLD,
) -> UserKnowledgeMap:
    """Combine knowledge areas, stored proficiency and recent results.

    Areas without a stored proficiency start at 0. Proficiency records for
    areas missing from the catalog are still listed under a generic name.
    """
    stored = {record.area_id: record for record in proficiencies}
    flagged = areas_needing_review(recent_results, topic_by_assessment or {}, threshold)

    entries: list[KnowledgeMapArea] = []
    seen: set[str] = set()
    for area in areas:
        record = stored.get(area.id)
        entries.append(
            KnowledgeMapArea(
                area_id=area.id,
                name=area.name,
                description=area.description,
                parent_id=area.parent_id,
                proficiency=record.proficiency if record else 0,
                last_assessed=record.last_assessed if record else None,
                needs_review=area.id in flagged,
            )
        )
        seen.add(area.id)

    for area_id, record in stored.items():
        if area_id in seen:
            continue
        entries.append(
            KnowledgeMapArea(
                area_id=area_id,
                name=f"Knowledge Area {area_id}",
                proficiency=record.proficiency,
                last_assessed=record.last_assessed,
                needs_review=area_id in flagged,
            )
        )

    return UserKnowledgeMap(user_id=user_id, areas=entries)
