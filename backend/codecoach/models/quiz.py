"""
Canonical quiz domain types.

Attributes are snake_case; the wire format (uploads, AI output, exports,
analytics payloads) uses the camelCase aliases. Both spellings are accepted
on input and ``to_dict`` always emits the aliases.
"""
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


Level = Literal["easy", "medium", "hard"]
QuestionType = Literal["mcq", "text", "code"]

LEVELS: tuple[str, ...] = ("easy", "medium", "hard")
QUESTION_TYPES: tuple[str, ...] = ("mcq", "text", "code")
LEVEL_POINTS = {"easy": 1, "medium": 2, "hard": 3}

MCQ_OPTION_COUNT = 4
MIN_POINTS = 1
MAX_POINTS = 10


class DomainModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BaseQuestion(DomainModel):
    id: str
    q: str
    level: Level = "medium"
    points: int = Field(ge=MIN_POINTS, le=MAX_POINTS)


class McqQuestion(BaseQuestion):
    type: Literal["mcq"] = "mcq"
    options: list[str] = Field(min_length=MCQ_OPTION_COUNT, max_length=MCQ_OPTION_COUNT)
    correct_index: int = Field(default=0, ge=0, le=MCQ_OPTION_COUNT - 1, alias="correctIndex")


class TextQuestion(BaseQuestion):
    type: Literal["text"] = "text"
    keywords: list[str] = Field(default_factory=list)


class CodeQuestion(BaseQuestion):
    type: Literal["code"] = "code"
    starter_code: str = Field(default="", alias="starterCode")
    expected_key_points: list[str] = Field(default_factory=list, alias="expectedKeyPoints")


Question = Annotated[Union[McqQuestion, TextQuestion, CodeQuestion], Field(discriminator="type")]


class Quiz(DomainModel):
    title: str
    description: str = ""
    questions: list[Question] = Field(min_length=1)

    def get_question(self, question_id: str) -> Question | None:
        return next((q for q in self.questions if q.id == question_id), None)

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)


class Answer(DomainModel):
    question_id: str = Field(alias="questionId")
    type: QuestionType
    value: Any = None
    correct: bool | None = None
    points_awarded: int = Field(default=0, alias="pointsAwarded")


class ProctorEvent(DomainModel):
    type: str
    detail: str
    at: datetime


class ProctorSummary(DomainModel):
    enabled: bool
    warnings: int = 0
    events: tuple[ProctorEvent, ...] = ()


class Attempt(DomainModel):
    """One graded pass over a quiz. Built once at grading time, never mutated."""

    quiz_title: str = Field(alias="quizTitle")
    score: int = Field(ge=0, le=100)
    total_questions: int = Field(alias="totalQuestions")
    duration_sec: int = Field(alias="durationSec")
    weak_areas: tuple[str, ...] = Field(default=(), alias="weakAreas")
    proctor_summary: ProctorSummary = Field(alias="proctorSummary")


DEFAULT_QUESTION = McqQuestion(
    id="q1",
    q="What does function sum(a, b) return?",
    options=["a - b", "a + b", "a * b", "b - a"],
    correct_index=1,
    level="easy",
    points=1,
)

SAMPLE_QUIZ: dict[str, Any] = {
    "title": "Sample: sum function quiz",
    "description": "Small quiz to test the sum example",
    "questions": [
        {
            "id": "q1",
            "type": "mcq",
            "q": "What does sum(a, b) return?",
            "options": ["a - b", "a + b", "a * b", "b - a"],
            "correctIndex": 1,
            "points": 1,
            "level": "easy",
        },
        {
            "id": "q2",
            "type": "text",
            "q": "Explain in one sentence what sum(a, b) does.",
            "points": 2,
            "level": "medium",
            "keywords": ["add", "sum", "two", "numbers"],
        },
        {
            "id": "q3",
            "type": "code",
            "q": "Write a function multiply(a, b) that returns a * b.",
            "points": 3,
            "level": "hard",
            "starterCode": "function multiply(a, b) {\n  // your code\n}",
            "expectedKeyPoints": ["function declaration", "return a * b"],
        },
    ],
}
