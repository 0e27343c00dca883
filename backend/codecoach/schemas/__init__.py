from codecoach.schemas.analytics import DashboardResponse, ProctorEventRequest, RecordedAttemptResponse
from codecoach.schemas.quiz import GenerationRequest, QuizResponse
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

__all__ = [
    "AddQuestionRequest",
    "AnswerRequest",
    "CreateSessionRequest",
    "DashboardResponse",
    "DetailsRequest",
    "GenerationRequest",
    "LevelRequest",
    "LoadQuizRequest",
    "ProctorEventRequest",
    "ProctoringRequest",
    "QuizResponse",
    "RecordedAttemptResponse",
    "SessionView",
    "StartAttemptRequest",
]
