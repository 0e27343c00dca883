"""
Coerce untrusted quiz JSON (model output or uploaded files) into ``Quiz``.

Nothing here raises for a malformed shape: unknown values fall back to
defaults. The only failure is a quiz with no questions at all, reported as
``EmptyQuizError`` so the caller can choose between rejecting the request and
substituting the default question.
"""
from collections.abc import Mapping
from typing import Any

from codecoach.core.errors import EmptyQuizError
from codecoach.models.quiz import (
    DEFAULT_QUESTION,
    LEVEL_POINTS,
    LEVELS,
    MAX_POINTS,
    MCQ_OPTION_COUNT,
    MIN_POINTS,
    QUESTION_TYPES,
    SAMPLE_QUIZ,
    CodeQuestion,
    McqQuestion,
    Question,
    Quiz,
    TextQuestion,
)
from codecoach.utils.coercion import clamp_number, string_list, text_or


DEFAULT_TITLE = "AI Generated Quiz"
DEFAULT_DESCRIPTION = "Practice quiz generated by AI"


def normalize_level(value: Any) -> str:
    level = str(value or "").lower()
    return level if level in LEVELS else "medium"


def normalize_type(value: Any) -> str:
    return value if value in QUESTION_TYPES else "text"


def normalize_question(raw: Any, index: int) -> Question:
    if not isinstance(raw, Mapping):
        raw = {}
    question_type = normalize_type(raw.get("type"))
    level = normalize_level(raw.get("level"))
    base = {
        "id": text_or(raw.get("id"), f"q{index + 1}"),
        "q": text_or(raw.get("q"), f"Question {index + 1}"),
        "level": level,
        "points": clamp_number(raw.get("points"), MIN_POINTS, MAX_POINTS, LEVEL_POINTS[level]),
    }

    if question_type == "mcq":
        options = string_list(raw.get("options"))[:MCQ_OPTION_COUNT]
        while len(options) < MCQ_OPTION_COUNT:
            options.append(f"Option {len(options) + 1}")
        correct_index = clamp_number(raw.get("correctIndex"), 0, MCQ_OPTION_COUNT - 1, 0)
        return McqQuestion(**base, options=options, correct_index=correct_index)

    if question_type == "code":
        return CodeQuestion(
            **base,
            starter_code=text_or(raw.get("starterCode"), ""),
            expected_key_points=string_list(raw.get("expectedKeyPoints")),
        )

    return TextQuestion(**base, keywords=string_list(raw.get("keywords")))


def normalize_questions(raw: Any, max_count: int | None = None) -> list[Question]:
    raw_questions = raw.get("questions") if isinstance(raw, Mapping) else None
    if not isinstance(raw_questions, list):
        return []
    if max_count is not None:
        raw_questions = raw_questions[:max(0, max_count)]
    return [normalize_question(item, index) for index, item in enumerate(raw_questions)]


def _quiz(raw: Any, questions: list[Question], default_title: str, default_description: str) -> Quiz:
    if not isinstance(raw, Mapping):
        raw = {}
    return Quiz(
        title=text_or(raw.get("title"), default_title),
        description=text_or(raw.get("description"), default_description),
        questions=questions,
    )


def normalize_quiz(
    raw: Any,
    max_count: int | None = None,
    default_title: str = DEFAULT_TITLE,
    default_description: str = DEFAULT_DESCRIPTION,
) -> Quiz:
    """
    Normalize a parsed value into a ``Quiz``.

    Args:
        raw:        Any parsed JSON value
        max_count:  Keep at most this many raw questions (applied before coercion)

    Raises:
        EmptyQuizError: when no questions survive
    """
    questions = normalize_questions(raw, max_count)
    if not questions:
        raise EmptyQuizError("Quiz did not contain any questions")
    return _quiz(raw, questions, default_title, default_description)


def normalize_quiz_or_default(
    raw: Any,
    default_title: str = "Practice Quiz",
    default_description: str = "AI-ready coding quiz",
) -> Quiz:
    """Same as ``normalize_quiz`` but an empty quiz gets the default MCQ question."""
    questions = normalize_questions(raw) or [DEFAULT_QUESTION]
    return _quiz(raw, questions, default_title, default_description)


def sample_quiz() -> Quiz:
    return normalize_quiz_or_default(SAMPLE_QUIZ)
