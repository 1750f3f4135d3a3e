"""
Study session endpoints.

A session is one Markdown note being edited by a user, plus the weak points
derived from the most recent exam taken on it. Every route is scoped to the
owner named in the X-User-Id header.

Route summary
-------------
POST   /api/sessions                          — create session
GET    /api/sessions                          — list owner's sessions
GET    /api/sessions/{session_id}             — session detail + weak points
PATCH  /api/sessions/{session_id}             — rename / save note content
DELETE /api/sessions/{session_id}             — delete session (cascades)
POST   /api/sessions/{session_id}/exam        — generate an exam from the note
POST   /api/sessions/{session_id}/exam-results — score answers, replace weak points
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies.auth import get_owned_session, get_owner_id
from app.dependencies.services import get_exam_generator
from app.models.database_models import Criticality, StudySession, WeakPoint
from app.models.schemas import (
    CriticalitySchema,
    ExamResultsRequest,
    GenerateExamResponse,
    SessionCreateRequest,
    SessionResponse,
    SessionUpdateRequest,
    WeakPointSchema,
)
from app.services.exam_attempt import ExamAttempt
from app.services.exam_generator import ExamGenerator
from app.utils.helpers import new_id, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_EXAM_TOPIC = "General concepts"


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _weak_point_schema(wp: WeakPoint) -> WeakPointSchema:
    return WeakPointSchema(
        id=wp.id,
        topic=wp.topic,
        description=wp.description,
        criticality=CriticalitySchema(wp.criticality.value),
        matched_text_snippet=wp.matched_text_snippet,
    )


async def _load_weak_points(db: AsyncSession, session_id: str) -> List[WeakPointSchema]:
    result = await db.execute(
        select(WeakPoint)
        .where(WeakPoint.session_id == session_id)
        .order_by(WeakPoint.position)
    )
    return [_weak_point_schema(wp) for wp in result.scalars().all()]


def _to_response(session: StudySession, weak_points: List[WeakPointSchema]) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        owner_id=session.owner_id,
        title=session.title,
        note_content=session.note_content or "",
        created_at=session.created_at,
        updated_at=session.updated_at,
        weak_points=weak_points,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SESSION CRUD
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    body: SessionCreateRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Create a new session for the calling user."""
    now = utcnow()
    session = StudySession(
        id=new_id(),
        owner_id=owner_id,
        title=body.title,
        note_content=body.note_content,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    await db.flush()

    logger.info("Created session id=%s title=%r for owner=%s", session.id, session.title, owner_id)
    return _to_response(session, [])


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
) -> List[SessionResponse]:
    """List the caller's sessions, most recently updated first."""
    result = await db.execute(
        select(StudySession)
        .where(StudySession.owner_id == owner_id)
        .order_by(StudySession.updated_at.desc())
    )
    sessions = result.scalars().all()

    # Batch-fetch weak points
    by_session = {s.id: [] for s in sessions}
    if by_session:
        wp_result = await db.execute(
            select(WeakPoint)
            .where(WeakPoint.session_id.in_(list(by_session)))
            .order_by(WeakPoint.session_id, WeakPoint.position)
        )
        for wp in wp_result.scalars().all():
            by_session[wp.session_id].append(_weak_point_schema(wp))

    return [_to_response(s, by_session[s.id]) for s in sessions]


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session: StudySession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Get a session with its weak points."""
    return _to_response(session, await _load_weak_points(db, session.id))


@router.patch("/{session_id}", response_model=SessionResponse)
async def update_session(
    body: SessionUpdateRequest,
    session: StudySession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Rename a session and/or save its note content."""
    if body.title is not None:
        session.title = body.title
    if body.note_content is not None:
        session.note_content = body.note_content
    session.updated_at = utcnow()
    await db.flush()

    return _to_response(session, await _load_weak_points(db, session.id))


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_session(
    session: StudySession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a session and its weak points. Indexed note text is kept."""
    await db.execute(delete(WeakPoint).where(WeakPoint.session_id == session.id))
    await db.delete(session)
    await db.flush()
    logger.info("Deleted session id=%s title=%r", session.id, session.title)


# ═══════════════════════════════════════════════════════════════════════════════
# EXAMS
# ═══════════════════════════════════════════════════════════════════════════════

@router.post("/{session_id}/exam", response_model=GenerateExamResponse)
async def generate_session_exam(
    session: StudySession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db),
    generator: ExamGenerator = Depends(get_exam_generator),
) -> GenerateExamResponse:
    """
    Generate an exam from this session's note.

    The session title is the topic. A non-blank note is ingested under the
    session id first, so repeated exams overwrite rather than duplicate it.
    """
    session_id = session.id
    topic = session.title.strip() or DEFAULT_EXAM_TOPIC
    content = session.note_content if (session.note_content or "").strip() else None

    # End the read transaction; the DB is not touched again in this request
    await db.commit()

    exam = await generator.generate(
        topic,
        doc_id=session_id if content else None,
        doc_content=content,
    )
    return GenerateExamResponse(exam=exam)


@router.post("/{session_id}/exam-results", response_model=SessionResponse)
async def submit_exam_results(
    body: ExamResultsRequest,
    session: StudySession = Depends(get_owned_session),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Score a finished exam and replace the session's weak points with one HIGH
    weak point per missed or unanswered question.
    """
    attempt = ExamAttempt()
    attempt.load(body.exam)
    attempt.record_answers(body.answers)
    weak_points = attempt.finish()

    # The latest exam wins: previous weak points are dropped wholesale
    await db.execute(delete(WeakPoint).where(WeakPoint.session_id == session.id))
    for position, wp in enumerate(weak_points):
        db.add(
            WeakPoint(
                id=wp.id,
                session_id=session.id,
                position=position,
                topic=wp.topic,
                description=wp.description,
                criticality=Criticality(wp.criticality.value),
                matched_text_snippet=wp.matched_text_snippet,
            )
        )
    session.updated_at = utcnow()
    await db.flush()

    logger.info(
        "Session %s: %d weak point(s) recorded from exam %r",
        session.id,
        len(weak_points),
        body.exam.exam_title,
    )
    return _to_response(session, weak_points)
