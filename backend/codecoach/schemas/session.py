from typing import Any

from pydantic import BaseModel

from codecoach.models.session import QuizSession


class CreateSessionRequest(BaseModel):
    quiz: dict[str, Any] | None = None
    proctoring: bool = False


class StartAttemptRequest(BaseModel):
    proctoring: bool | None = None


class ProctoringRequest(BaseModel):
    enabled: bool


class AnswerRequest(BaseModel):
    value: Any = None


class SessionView(BaseModel):
    id: str
    state: str
    quiz: dict[str, Any]
    proctoring: bool
    elapsed_sec: int
    answers: dict[str, dict[str, Any]]
    score: int | None = None
    warnings: int = 0
    attempt: dict[str, Any] | None = None

    @classmethod
    def from_session(cls, session: QuizSession) -> "SessionView":
        return cls(
            id=session.id,
            state=session.state.value,
            quiz=session.quiz.to_dict(),
            proctoring=session.proctoring_enabled,
            elapsed_sec=session.elapsed,
            answers={question_id: answer.to_dict() for question_id, answer in session.answers.items()},
            score=session.score,
            warnings=session.collector.warnings,
            attempt=session.attempt.to_dict() if session.attempt else None,
        )


class LoadQuizRequest(BaseModel):
    quiz: dict[str, Any]


class DetailsRequest(BaseModel):
    title: str | None = None
    description: str | None = None


class AddQuestionRequest(BaseModel):
    type: str


class LevelRequest(BaseModel):
    level: str
