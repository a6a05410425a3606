"""
Assessment API Endpoints

Live assessment sessions, adaptive question lookup, knowledge maps,
historical knowledge gaps and AI question generation.
"""
# ruff: noqa: B008 - FastAPI Depends in function defaults is standard pattern

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from skillgauge.ai import QuestionGenerator
from skillgauge.assessment import (
    AssessmentError,
    AssessmentNotFoundError,
    AssessmentSession,
    KnowledgeGapAggregator,
    MalformedQuestionError,
    SessionManager,
    SessionNotFoundError,
    build_knowledge_map,
)
from skillgauge.assessment.percentages import round_half_up
from skillgauge.config import settings
from skillgauge.core.database import SessionLocal, get_db
from skillgauge.core.schemas import (
    AnswerResponse,
    AnswerSubmit,
    AssessmentReport,
    AssessmentResult,
    KnowledgeGapsRequest,
    KnowledgeGapsResponse,
    NextQuestionResponse,
    QuestionGenerationRequest,
    QuestionGenerationResponse,
    SessionStartRequest,
    SessionStateResponse,
    UserKnowledgeMap,
)
from skillgauge.repository import AssessmentRepository, SqlAssessmentRepository

router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================


@asynccontextmanager
async def open_repository() -> AsyncIterator[AssessmentRepository]:
    """Repository on a fresh database session (used outside request scope)."""
    async with SessionLocal() as db:
        yield SqlAssessmentRepository(
            db,
            policy=settings.QUESTION_SELECTION_POLICY,
            seed=settings.QUESTION_SELECTION_SEED,
        )


async def get_repository(db: AsyncSession = Depends(get_db)) -> AssessmentRepository:
    """Repository on the request's database session."""
    return SqlAssessmentRepository(
        db,
        policy=settings.QUESTION_SELECTION_POLICY,
        seed=settings.QUESTION_SELECTION_SEED,
    )


@lru_cache(maxsize=1)
def get_question_generator() -> QuestionGenerator:
    """Shared question generator (one response cache per process)."""
    return QuestionGenerator.from_settings(settings)


def get_session_manager(request: Request) -> SessionManager:
    """Process-wide session manager created by the app factory."""
    manager: SessionManager = request.app.state.session_manager
    return manager


def http_error(exc: AssessmentError) -> HTTPException:
    """Map an engine error to an HTTP error."""
    if isinstance(exc, AssessmentNotFoundError | SessionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, MalformedQuestionError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": str(exc),
                "question_id": exc.question_id,
                "problems": exc.problems,
            },
        )
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


def session_state(session: AssessmentSession) -> SessionStateResponse:
    remaining = session.remaining_seconds
    return SessionStateResponse(
        session_id=session.id,
        assessment_id=session.assessment.id,
        user_id=session.user_id,
        status=session.status.value,
        answered=len(session.results),
        current_difficulty=session.current_difficulty,
        current_question=session.current_question,
        remaining_seconds=round_half_up(remaining) if remaining is not None else None,
    )


def completed_state(session_id: str, result: AssessmentResult) -> SessionStateResponse:
    return SessionStateResponse(
        session_id=session_id,
        assessment_id=result.assessment_id,
        user_id=result.user_id,
        status="completed",
        answered=len(result.question_results),
    )


# ============================================================================
# Sessions
# ============================================================================


@router.post(
    "/sessions", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED
)
async def start_session(
    request_data: SessionStartRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionStateResponse:
    """Start an assessment session and present its first question."""
    try:
        session = await manager.start_session(request_data.assessment_id, request_data.user_id)
    except AssessmentError as e:
        raise http_error(e) from e

    return session_state(session)


@router.get("/sessions/{session_id}", response_model=SessionStateResponse)
async def get_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> SessionStateResponse:
    """Get session state, current question and remaining time."""
    try:
        result = manager.result(session_id)
        if result is not None:
            return completed_state(session_id, result)
        return session_state(manager.get(session_id))
    except AssessmentError as e:
        raise http_error(e) from e


@router.post("/sessions/{session_id}/answers", response_model=AnswerResponse)
async def submit_answer(
    session_id: str,
    answer_data: AnswerSubmit,
    manager: SessionManager = Depends(get_session_manager),
) -> AnswerResponse:
    """Submit an answer to the presented question and advance the session.

    Flow:
    1. Grade the answer (malformed answers are incorrect, never errors)
    2. Adjust difficulty for adaptive assessments
    3. Present the next question, or complete the session
    """
    try:
        outcome = manager.submit_answer(session_id, answer_data.question_id, answer_data.answer)
        result = manager.result(session_id)
    except AssessmentError as e:
        raise http_error(e) from e

    message = None
    if outcome.completed and result is not None and result.ended_early:
        message = "No more questions available. The assessment ended early."

    return AnswerResponse(
        question_id=outcome.question_id,
        correct=outcome.correct,
        next_question=outcome.next_question,
        session_completed=outcome.completed,
        message=message,
    )


@router.post("/sessions/{session_id}/expire", response_model=AssessmentReport)
async def expire_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> AssessmentReport:
    """Force the session to time out and return its report."""
    try:
        result = manager.expire(session_id)
    except AssessmentError as e:
        raise http_error(e) from e

    return manager.builder.build_report(result)


@router.get("/sessions/{session_id}/result", response_model=AssessmentReport)
async def get_session_result(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> AssessmentReport:
    """Get the result and report of a completed session."""
    try:
        report = manager.report(session_id)
    except AssessmentError as e:
        raise http_error(e) from e

    if report is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Session {session_id} is still in progress",
        )
    return report


# ============================================================================
# Adaptive selection
# ============================================================================


@router.get("/adaptive/next", response_model=NextQuestionResponse)
async def next_adaptive_question(
    assessment_id: str,
    target_difficulty: int = Query(ge=settings.DIFFICULTY_MIN, le=settings.DIFFICULTY_MAX),
    exclude_ids: list[str] = Query(default=[]),
    area_ids: list[str] = Query(default=[]),
    repository: AssessmentRepository = Depends(get_repository),
) -> NextQuestionResponse:
    """Next unanswered question at the target difficulty, else easier, else harder."""
    try:
        assessment = await repository.load_assessment(assessment_id)
    except AssessmentError as e:
        raise http_error(e) from e

    if not assessment.adaptive:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Assessment {assessment_id} is not adaptive",
        )

    question = await repository.select_next_question(
        assessment_id, target_difficulty, exclude_ids, area_ids or None
    )
    if question is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No more questions available",
        )
    return NextQuestionResponse(question=question)


# ============================================================================
# Knowledge map & gaps
# ============================================================================


@router.get("/users/{user_id}/knowledge-map", response_model=UserKnowledgeMap)
async def get_knowledge_map(
    user_id: str, repository: AssessmentRepository = Depends(get_repository)
) -> UserKnowledgeMap:
    """Knowledge areas with the user's proficiency and needs-review flags."""
    areas = await repository.list_knowledge_areas()
    proficiencies = await repository.list_proficiencies(user_id)
    recent = await repository.list_results(user_id, limit=settings.KNOWLEDGE_MAP_RECENT_RESULTS)

    topic_by_assessment: dict[str, str | None] = {}
    for assessment_id in {result.assessment_id for result in recent}:
        try:
            topic_by_assessment[assessment_id] = (
                await repository.load_assessment(assessment_id)
            ).topic_id
        except AssessmentError:
            topic_by_assessment[assessment_id] = None

    return build_knowledge_map(
        user_id,
        areas,
        proficiencies,
        recent,
        topic_by_assessment,
        threshold=settings.NEEDS_REVIEW_SCORE_THRESHOLD,
    )


@router.get("/users/{user_id}/knowledge-gaps", response_model=KnowledgeGapsResponse)
async def get_user_knowledge_gaps(
    user_id: str,
    topic_id: str | None = None,
    repository: AssessmentRepository = Depends(get_repository),
) -> KnowledgeGapsResponse:
    """Knowledge gaps across the user's stored results."""
    submissions = await repository.list_submissions(user_id, topic_id)
    aggregator = KnowledgeGapAggregator.from_settings(settings)
    return KnowledgeGapsResponse(knowledge_gaps=aggregator.extract_knowledge_gaps(submissions))


@router.post("/knowledge-gaps", response_model=KnowledgeGapsResponse)
async def extract_knowledge_gaps(request_data: KnowledgeGapsRequest) -> KnowledgeGapsResponse:
    """Flag weak knowledge areas across submitted historical results."""
    aggregator = KnowledgeGapAggregator.from_settings(settings)
    return KnowledgeGapsResponse(
        knowledge_gaps=aggregator.extract_knowledge_gaps(request_data.submissions)
    )


# ============================================================================
# AI question generation
# ============================================================================


@router.post("/questions/generate", response_model=QuestionGenerationResponse)
async def generate_questions(
    request_data: QuestionGenerationRequest,
    generator: QuestionGenerator = Depends(get_question_generator),
) -> QuestionGenerationResponse:
    """Generate validated candidate questions; empty when the AI is unavailable."""
    questions = await asyncio.to_thread(
        generator.generate,
        request_data.topic,
        difficulty=request_data.difficulty,
        proficiency=request_data.proficiency,
        kinds=request_data.kinds,
        count=request_data.count,
        knowledge_gaps=request_data.knowledge_gaps,
        subtopics=request_data.subtopics,
        knowledge_area_id=request_data.knowledge_area_id,
    )
    return QuestionGenerationResponse(questions=questions)
