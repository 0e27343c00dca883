"""Quiz JSON import (uploads) and result export documents."""
import json
import re
from typing import TYPE_CHECKING, Any

from codecoach.core.errors import QuizValidationError
from codecoach.models.quiz import Quiz
from codecoach.utils.normalizer import normalize_quiz_or_default

if TYPE_CHECKING:
    from codecoach.models.session import QuizSession


def load_uploaded_quiz(data: bytes | str | Any) -> Quiz:
    """
    Parse and normalize an uploaded quiz document.

    The top-level shape ``{title, questions: [...]}`` is checked before any
    per-question coercion; anything else is rejected with ``VALIDATION_ERROR``.
    """
    if isinstance(data, (bytes, str)):
        try:
            parsed = json.loads(data or "{}")
        except (ValueError, RecursionError) as exc:
            raise QuizValidationError(f"Could not parse JSON: {exc}") from exc
    else:
        parsed = data

    if not isinstance(parsed, dict) or not parsed.get("title") or not isinstance(parsed.get("questions"), list):
        raise QuizValidationError("Invalid quiz JSON. Expected { title, questions: [] }")
    return normalize_quiz_or_default(parsed)


def build_result_export(session: "QuizSession") -> dict[str, Any]:
    return {
        "quizTitle": session.quiz.title,
        "answers": {question_id: answer.to_dict() for question_id, answer in session.answers.items()},
        "score": session.score,
        "proctor": session.collector.summary(session.proctoring_enabled).to_dict(),
    }


def export_filename(title: str | None) -> str:
    stem = re.sub(r"\s+", "_", title or "quiz")
    return f"{stem}_results.json"


def dump_result_export(session: "QuizSession") -> str:
    return json.dumps(build_result_export(session), indent=2)
