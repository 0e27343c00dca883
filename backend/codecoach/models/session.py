"""
Quiz session lifecycle: authoring -> taking -> graded.

A session owns one quiz, the attempt timer, the learner's in-progress answers
and the proctoring collector. Every state change goes through ``transition``
so illegal moves (for example submitting before an attempt was started) are
rejected instead of silently toggling flags.
"""
import asyncio
import contextlib
import logging
import time
import uuid
from enum import Enum
from typing import Any, Protocol

from codecoach.core.errors import BadRequestError, QuizValidationError, SessionStateError
from codecoach.models.grading import GradeReport, grade_attempt
from codecoach.models.quiz import (
    LEVEL_POINTS,
    LEVELS,
    QUESTION_TYPES,
    Answer,
    Attempt,
    ProctorEvent,
    Question,
    Quiz,
)
from codecoach.utils.normalizer import normalize_question
from codecoach.utils.proctoring import ProctorCollector, SignalBus


logger = logging.getLogger(__name__)

PROCTOR_EXPORT_LIMIT = 10


class SessionState(str, Enum):
    AUTHORING = "authoring"
    TAKING = "taking"
    GRADED = "graded"


TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.AUTHORING: frozenset({SessionState.AUTHORING, SessionState.TAKING}),
    # taking -> taking is a restart, taking -> authoring abandons the attempt
    SessionState.TAKING: frozenset({SessionState.AUTHORING, SessionState.TAKING, SessionState.GRADED}),
    SessionState.GRADED: frozenset({SessionState.AUTHORING, SessionState.TAKING}),
}


class AttemptSink(Protocol):
    async def record_attempt(self, attempt: Attempt) -> None: ...

    async def record_proctor_events(self, events: list[ProctorEvent]) -> None: ...


class AttemptTimer:
    """Counts whole seconds while an attempt is running."""

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self.elapsed = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self.elapsed = 0
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def tick(self) -> None:
        self.elapsed += 1

    async def _run(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            while True:
                await asyncio.sleep(self.interval)
                self.tick()


class QuizSession:
    def __init__(self, quiz: Quiz, session_id: str | None = None, timer_interval: float = 1.0) -> None:
        self.id = session_id or str(uuid.uuid4())
        self.quiz = quiz
        self.state = SessionState.AUTHORING
        self.proctoring_enabled = False
        self.answers: dict[str, Answer] = {}
        self.report: GradeReport | None = None
        self.attempt: Attempt | None = None
        self.timer = AttemptTimer(timer_interval)
        self.environment = SignalBus()
        self.collector = ProctorCollector()
        self.last_seen = time.monotonic()

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    @property
    def elapsed(self) -> int:
        return self.timer.elapsed

    @property
    def score(self) -> int | None:
        return self.report.score if self.report else None

    def transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Cannot move session from {self.state.value} to {target.value}",
                detail={"session_id": self.id, "state": self.state.value},
            )
        logger.info(
            "Session transition",
            extra={"session_id": self.id, "from_state": self.state.value, "to_state": target.value},
        )
        self.state = target

    def _require(self, state: SessionState, action: str) -> None:
        if self.state is not state:
            raise SessionStateError(
                f"Cannot {action} while session is {self.state.value}",
                detail={"session_id": self.id, "state": self.state.value},
            )

    def _end_attempt(self) -> None:
        self.timer.stop()
        self.collector.detach()

    # authoring

    def load_quiz(self, quiz: Quiz) -> None:
        """Replace the quiz (generated or uploaded) and go back to authoring."""
        self._end_attempt()
        self.transition(SessionState.AUTHORING)
        self.quiz = quiz
        self.answers = {}
        self.report = None
        self.attempt = None

    def return_to_authoring(self) -> None:
        self._end_attempt()
        self.transition(SessionState.AUTHORING)

    def set_details(self, title: str | None = None, description: str | None = None) -> None:
        self._require(SessionState.AUTHORING, "edit the quiz")
        update = {}
        if title is not None:
            update["title"] = title
        if description is not None:
            update["description"] = description
        self.quiz = self.quiz.model_copy(update=update)

    def add_question(self, question_type: str) -> Question:
        self._require(SessionState.AUTHORING, "edit the quiz")
        if question_type not in QUESTION_TYPES:
            raise BadRequestError(f"Unknown question type: {question_type}")
        prompts = {
            "mcq": "New MCQ question",
            "text": "Describe your answer.",
            "code": "Write code to solve the task.",
        }
        question = normalize_question(
            {"id": f"q{uuid.uuid4().hex[:8]}", "type": question_type, "q": prompts[question_type]},
            len(self.quiz.questions),
        )
        self.quiz = self.quiz.model_copy(update={"questions": [*self.quiz.questions, question]})
        return question

    def update_question(self, raw: dict[str, Any]) -> Question:
        self._require(SessionState.AUTHORING, "edit the quiz")
        index = next((i for i, q in enumerate(self.quiz.questions) if q.id == raw.get("id")), None)
        if index is None:
            raise BadRequestError(f"Unknown question id: {raw.get('id')}")
        question = normalize_question(raw, index)
        questions = list(self.quiz.questions)
        questions[index] = question
        self.quiz = self.quiz.model_copy(update={"questions": questions})
        return question

    def set_question_level(self, question_id: str, level: str) -> Question:
        self._require(SessionState.AUTHORING, "edit the quiz")
        if level not in LEVELS:
            raise BadRequestError(f"Unknown level: {level}")
        question = self.quiz.get_question(question_id)
        if question is None:
            raise BadRequestError(f"Unknown question id: {question_id}")
        raw = question.to_dict()
        raw.update(level=level, points=LEVEL_POINTS[level])
        return self.update_question(raw)

    def remove_question(self, question_id: str) -> None:
        self._require(SessionState.AUTHORING, "edit the quiz")
        questions = [q for q in self.quiz.questions if q.id != question_id]
        if len(questions) == len(self.quiz.questions):
            raise BadRequestError(f"Unknown question id: {question_id}")
        if not questions:
            raise QuizValidationError("A quiz needs at least one question")
        self.quiz = self.quiz.model_copy(update={"questions": questions})

    # taking

    def start_attempt(self, proctoring: bool | None = None) -> None:
        """Begin a fresh attempt. Never resumes: timer, answers and proctor log restart."""
        self._end_attempt()
        self.transition(SessionState.TAKING)
        if proctoring is not None:
            self.proctoring_enabled = proctoring
        self.answers = {}
        self.report = None
        self.attempt = None
        self.collector.reset()
        self.timer.start()
        if self.proctoring_enabled:
            self.collector.attach(self.environment)

    def set_proctoring(self, enabled: bool) -> None:
        self.proctoring_enabled = enabled
        if self.state is not SessionState.TAKING:
            return
        if enabled:
            self.collector.attach(self.environment)
        else:
            self.collector.detach()

    def set_answer(self, question_id: str, value: Any) -> Answer:
        self._require(SessionState.TAKING, "answer")
        question = self.quiz.get_question(question_id)
        if question is None:
            raise BadRequestError(f"Unknown question id: {question_id}")
        answer = Answer(question_id=question_id, type=question.type, value=value)
        self.answers[question_id] = answer
        return answer

    async def submit(self, sink: AttemptSink | None = None) -> Attempt:
        """
        Grade the running attempt and fix its ``Attempt`` record.

        Proctoring observers are released before anything is awaited, so the
        frozen attempt is exactly what gets recorded and a restart that runs
        while ``sink`` is still recording keeps its own observers. The proctor
        events sent to ``sink`` come from the attempt, never the live collector.
        """
        self._require(SessionState.TAKING, "submit")
        try:
            self.timer.stop()
            submissions = {question_id: answer.value for question_id, answer in self.answers.items()}
            self.report = grade_attempt(self.quiz, submissions)
            self.answers = dict(self.report.answers)
            attempt = Attempt(
                quiz_title=self.quiz.title,
                score=self.report.score,
                total_questions=len(self.quiz.questions),
                duration_sec=self.timer.elapsed,
                weak_areas=tuple(self.report.weak_areas),
                proctor_summary=self.collector.summary(self.proctoring_enabled),
            )
        finally:
            self.collector.detach()
        self.attempt = attempt
        self.transition(SessionState.GRADED)
        if sink is not None:
            await sink.record_attempt(attempt)
            summary = attempt.proctor_summary
            if summary.enabled and summary.events:
                await sink.record_proctor_events(list(summary.events[-PROCTOR_EXPORT_LIMIT:]))
        return attempt

    def close(self) -> None:
        """Release the timer and every proctoring observer."""
        self._end_attempt()
