import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from codecoach.models.quiz import Answer, CodeQuestion, McqQuestion, Question, Quiz, TextQuestion
from codecoach.utils.coercion import round_half_up


logger = logging.getLogger(__name__)


@dataclass
class GradeReport:
    answers: dict[str, Answer]
    earned: int
    total: int
    score: int
    weak_areas: list[str] = field(default_factory=list)


def weak_area_tag(question: Question) -> str:
    return f"{question.type}-{question.level}"


def grade_mcq(question: McqQuestion, submitted: Any) -> Answer:
    selected = submitted if isinstance(submitted, int) and not isinstance(submitted, bool) else None
    correct = selected is not None and selected == question.correct_index
    return Answer(
        question_id=question.id,
        type=question.type,
        value=selected,
        correct=correct,
        points_awarded=question.points if correct else 0,
    )


def grade_keywords(question: Question, submitted: Any, keywords: list[str]) -> Answer:
    """
    Keyword-overlap grading shared by text and code questions.

    A keyword matches when its lower-cased form occurs anywhere in the
    lower-cased answer. No keywords means the question cannot be graded:
    ``correct`` stays ``None`` and no points are awarded.
    """
    value = submitted if submitted is not None else ""
    if not keywords:
        return Answer(question_id=question.id, type=question.type, value=value, correct=None, points_awarded=0)

    answer_text = str(submitted or "").lower()
    matched = sum(1 for keyword in keywords if keyword.lower() in answer_text)
    fraction = min(1.0, matched / len(keywords))
    awarded = round_half_up(fraction * question.points)
    return Answer(
        question_id=question.id,
        type=question.type,
        value=value,
        correct=awarded == question.points,
        points_awarded=awarded,
    )


def grade_question(question: Question, submitted: Any) -> Answer:
    if isinstance(question, McqQuestion):
        return grade_mcq(question, submitted)
    if isinstance(question, CodeQuestion):
        return grade_keywords(question, submitted, question.expected_key_points)
    if isinstance(question, TextQuestion):
        return grade_keywords(question, submitted, question.keywords)
    return Answer(question_id=question.id, type=question.type, value=submitted, correct=None)


def grade_attempt(quiz: Quiz, submissions: Mapping[str, Any]) -> GradeReport:
    """
    Grade every question of ``quiz`` against ``submissions`` (question id -> value).

    Ungradable questions keep their points in the denominator and contribute
    zero. Weak areas are emitted once per question that is not fully correct,
    in question order and without de-duplication.
    """
    answers: dict[str, Answer] = {}
    weak_areas: list[str] = []
    earned = 0
    total = 0
    for question in quiz.questions:
        total += question.points
        answer = grade_question(question, submissions.get(question.id))
        answers[question.id] = answer
        earned += answer.points_awarded
        if answer.correct is not True:
            weak_areas.append(weak_area_tag(question))

    score = round_half_up(100 * earned / total) if total > 0 else 0
    logger.debug(
        "Attempt graded",
        extra={"quiz_title": quiz.title, "earned": earned, "total": total, "score": score},
    )
    return GradeReport(answers=answers, earned=earned, total=total, score=score, weak_areas=weak_areas)
