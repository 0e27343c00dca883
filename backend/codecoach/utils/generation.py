"""
AI quiz generation: request coercion, prompt, and the extract -> normalize pass.

Failures here are request failures. The generation path never substitutes a
sample quiz, so a learner is not misled about where their questions came from.
"""
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codecoach.core.errors import (
    BadRequestError,
    EmptyQuizError,
    InvalidAIOutputError,
    NoJSONFoundError,
)
from codecoach.core.groq import ModelClient
from codecoach.models.quiz import Quiz
from codecoach.utils.coercion import clamp_number
from codecoach.utils.extraction import extract_json
from codecoach.utils.normalizer import normalize_quiz


logger = logging.getLogger(__name__)

GENERATION_TYPES = ("mixed", "mcq", "text", "code")
GENERATION_DIFFICULTIES = ("mixed", "easy", "medium", "hard")
MAX_GENERATED_QUESTIONS = 15
RAW_EXCERPT_LENGTH = 500


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    question_type: str = Field(default="mixed", alias="questionType")
    difficulty: str = "mixed"
    count: int = 5
    context_code: str = Field(default="", alias="contextCode")
    output_language: str = Field(default="English", alias="outputLanguage")

    @field_validator("topic", "context_code", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("output_language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> str:
        return str(value or "English")

    @field_validator("question_type", mode="before")
    @classmethod
    def _question_type(cls, value: Any) -> str:
        value = str(value or "mixed").lower()
        return value if value in GENERATION_TYPES else "mixed"

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, value: Any) -> str:
        value = str(value or "mixed").lower()
        return value if value in GENERATION_DIFFICULTIES else "mixed"

    @field_validator("count", mode="before")
    @classmethod
    def _count(cls, value: Any) -> int:
        return clamp_number(value, 1, MAX_GENERATED_QUESTIONS, 5)


QUIZ_PROMPT = """
You are creating a coding-learning quiz in {output_language}.
Create {count} questions about: {topic}.
Question type requirement: {question_type}.
Difficulty requirement: {difficulty}.
If context code is provided, include questions tied to that code.

Context code (optional):
```
{context_code}
```

Return ONLY valid JSON in this shape:
{{
  "title": "...",
  "description": "...",
  "questions": [
    {{
      "id": "q1",
      "type": "mcq",
      "level": "easy",
      "q": "...",
      "options": ["...", "...", "...", "..."],
      "correctIndex": 0,
      "points": 1
    }},
    {{
      "id": "q2",
      "type": "text",
      "level": "medium",
      "q": "...",
      "keywords": ["...", "..."],
      "points": 2
    }},
    {{
      "id": "q3",
      "type": "code",
      "level": "hard",
      "q": "...",
      "starterCode": "// optional starter code",
      "expectedKeyPoints": ["...", "..."],
      "points": 3
    }}
  ]
}}

Rules:
- Allowed type values: mcq, text, code.
- Allowed level values: easy, medium, hard.
- Each question must have one level.
- Keep question text concise and student-friendly.
- For MCQ include exactly 4 options and one correctIndex.
- For code questions, include starterCode when useful.
- Do not include markdown or extra text.
"""


def build_quiz_prompt(request: GenerationRequest) -> str:
    return QUIZ_PROMPT.format(
        output_language=request.output_language,
        count=request.count,
        topic=request.topic or "programming fundamentals",
        question_type=request.question_type,
        difficulty=request.difficulty,
        context_code=request.context_code,
    ).strip()


class QuizGenerator:
    max_tokens = 1700
    temperature = 0.35
    timeout_ms = 35000

    def __init__(self, client: ModelClient) -> None:
        self.client = client

    async def generate(self, request: GenerationRequest) -> Quiz:
        if not request.topic and not request.context_code:
            raise BadRequestError("Provide at least `topic` or `contextCode` for quiz generation")

        logger.info(
            "Quiz generation request",
            extra={
                "topic": request.topic,
                "question_type": request.question_type,
                "difficulty": request.difficulty,
                "count": request.count,
            },
        )
        raw = await self.client.complete(
            build_quiz_prompt(request),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            timeout_ms=self.timeout_ms,
        )
        try:
            parsed = extract_json(raw)
        except NoJSONFoundError as exc:
            logger.warning("Model output had no JSON", extra={"raw_length": len(raw)})
            raise InvalidAIOutputError("Model response was not valid JSON", raw[:RAW_EXCERPT_LENGTH]) from exc
        try:
            return normalize_quiz(parsed, max_count=request.count)
        except EmptyQuizError as exc:
            logger.warning("Model output had no questions")
            raise InvalidAIOutputError(
                "AI response did not contain questions", raw[:RAW_EXCERPT_LENGTH]
            ) from exc
