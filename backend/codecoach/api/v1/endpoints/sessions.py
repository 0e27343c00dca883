import logging
import time
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from codecoach.api.deps import get_analytics_store, get_optional_user_id
from codecoach.core.config import settings
from codecoach.core.errors import NotFoundError
from codecoach.core.store import AnalyticsStore
from codecoach.models.session import QuizSession
from codecoach.schemas.session import (
    AddQuestionRequest,
    AnswerRequest,
    CreateSessionRequest,
    DetailsRequest,
    LevelRequest,
    LoadQuizRequest,
    ProctoringRequest,
    SessionView,
    StartAttemptRequest,
)
from codecoach.utils.normalizer import normalize_quiz_or_default, sample_quiz
from codecoach.utils.quiz_files import build_result_export, export_filename, load_uploaded_quiz


router = APIRouter(prefix="/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)
SESSIONS: dict[str, QuizSession] = {}


def evict_idle_sessions(max_idle: float | None = None, now: float | None = None) -> list[str]:
    """Close and drop sessions with no request for ``max_idle`` seconds."""
    max_idle = settings.SESSION_IDLE_SECONDS if max_idle is None else max_idle
    now = time.monotonic() if now is None else now
    evicted = [session_id for session_id, s in SESSIONS.items() if now - s.last_seen > max_idle]
    for session_id in evicted:
        SESSIONS.pop(session_id).close()
    if evicted:
        logger.info("Idle sessions evicted", extra={"count": len(evicted)})
    return evicted


def get_session(session_id: str) -> QuizSession:
    session = SESSIONS.get(session_id)
    if session is None:
        raise NotFoundError("Session not found", detail={"session_id": session_id})
    session.touch()
    return session


@router.post("", response_model=SessionView)
async def create_session(payload: CreateSessionRequest) -> SessionView:
    evict_idle_sessions()
    quiz = normalize_quiz_or_default(payload.quiz) if payload.quiz is not None else sample_quiz()
    session = QuizSession(quiz)
    session.proctoring_enabled = payload.proctoring
    SESSIONS[session.id] = session
    logger.info("Session created", extra={"session_id": session.id, "question_count": len(quiz.questions)})
    return SessionView.from_session(session)


@router.get("/{session_id}", response_model=SessionView)
async def read_session(session_id: str) -> SessionView:
    return SessionView.from_session(get_session(session_id))


@router.delete("/{session_id}")
async def delete_session(session_id: str) -> dict:
    session = get_session(session_id)
    session.close()
    SESSIONS.pop(session_id, None)
    return {"ok": True}


# authoring


@router.put("/{session_id}/quiz", response_model=SessionView)
async def load_quiz(session_id: str, payload: LoadQuizRequest) -> SessionView:
    session = get_session(session_id)
    session.load_quiz(load_uploaded_quiz(payload.quiz))
    return SessionView.from_session(session)


@router.post("/{session_id}/authoring", response_model=SessionView)
async def return_to_authoring(session_id: str) -> SessionView:
    session = get_session(session_id)
    session.return_to_authoring()
    return SessionView.from_session(session)


@router.patch("/{session_id}/details", response_model=SessionView)
async def set_details(session_id: str, payload: DetailsRequest) -> SessionView:
    session = get_session(session_id)
    session.set_details(title=payload.title, description=payload.description)
    return SessionView.from_session(session)


@router.post("/{session_id}/questions")
async def add_question(session_id: str, payload: AddQuestionRequest) -> dict:
    question = get_session(session_id).add_question(payload.type)
    return {"ok": True, "question": question.to_dict()}


@router.put("/{session_id}/questions/{question_id}")
async def update_question(session_id: str, question_id: str, payload: dict[str, Any]) -> dict:
    question = get_session(session_id).update_question({**payload, "id": question_id})
    return {"ok": True, "question": question.to_dict()}


@router.put("/{session_id}/questions/{question_id}/level")
async def set_question_level(session_id: str, question_id: str, payload: LevelRequest) -> dict:
    question = get_session(session_id).set_question_level(question_id, payload.level)
    return {"ok": True, "question": question.to_dict()}


@router.delete("/{session_id}/questions/{question_id}", response_model=SessionView)
async def remove_question(session_id: str, question_id: str) -> SessionView:
    session = get_session(session_id)
    session.remove_question(question_id)
    return SessionView.from_session(session)


# taking


@router.post("/{session_id}/start", response_model=SessionView)
async def start_attempt(session_id: str, payload: StartAttemptRequest) -> SessionView:
    session = get_session(session_id)
    session.start_attempt(payload.proctoring)
    return SessionView.from_session(session)


@router.post("/{session_id}/proctoring", response_model=SessionView)
async def set_proctoring(session_id: str, payload: ProctoringRequest) -> SessionView:
    session = get_session(session_id)
    session.set_proctoring(payload.enabled)
    return SessionView.from_session(session)


@router.put("/{session_id}/answers/{question_id}")
async def submit_answer(session_id: str, question_id: str, payload: AnswerRequest) -> dict:
    answer = get_session(session_id).set_answer(question_id, payload.value)
    return {"ok": True, "answer": answer.to_dict()}


@router.post("/{session_id}/submit", response_model=SessionView)
async def submit_attempt(
    session_id: str,
    user_id: str | None = Depends(get_optional_user_id),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> SessionView:
    session = get_session(session_id)
    # anonymous attempts are graded but not recorded
    sink = store.for_user(user_id) if user_id else None
    await session.submit(sink)
    return SessionView.from_session(session)


@router.get("/{session_id}/export")
async def export_results(session_id: str) -> JSONResponse:
    session = get_session(session_id)
    return JSONResponse(
        content=build_result_export(session),
        headers={"Content-Disposition": f'attachment; filename="{export_filename(session.quiz.title)}"'},
    )
