"""
Scoring engine: per-question grading, score rounding and weak areas.
"""
from codecoach.models.grading import grade_attempt, grade_keywords, grade_mcq
from codecoach.models.quiz import McqQuestion, Quiz, TextQuestion


def _mcq(qid="m1", correct_index=2, points=1, level="easy"):
    return McqQuestion(id=qid, q="Pick one", options=["a", "b", "c", "d"], correct_index=correct_index,
                       points=points, level=level)


def _text(qid="t1", keywords=("loop",), points=2, level="medium"):
    return TextQuestion(id=qid, q="Explain", keywords=list(keywords), points=points, level=level)


def test_sample_quiz_attempt(quiz):
    report = grade_attempt(quiz, {
        "q1": 1,
        "q2": "It will ADD two numbers and return the sum",
        "q3": "function multiply(a, b) { return a * b }",
    })
    assert report.answers["q1"].correct is True
    assert report.answers["q2"].points_awarded == 2
    # one of two key points matched: 1.5 rounds up to 2 of 3
    assert report.answers["q3"].points_awarded == 2
    assert report.answers["q3"].correct is False
    assert (report.earned, report.total) == (5, 6)
    assert report.score == 83
    assert report.weak_areas == ["code-hard"]


def test_mcq_requires_integer_answer():
    question = _mcq(correct_index=1)
    assert grade_mcq(question, 1).correct is True
    assert grade_mcq(question, "1").correct is False
    assert grade_mcq(question, True).correct is False
    assert grade_mcq(question, None).value is None


def test_keyword_match_is_case_insensitive_substring():
    answer = grade_keywords(_text(), "We use a For-LOOPING construct", ["loop"])
    assert answer.correct is True
    assert answer.points_awarded == 2


def test_partial_credit_rounds_half_up():
    question = _text(keywords=("alpha", "beta"), points=1)
    answer = grade_keywords(question, "alpha only", question.keywords)
    assert answer.points_awarded == 1
    assert answer.correct is True


def test_question_without_keywords_is_ungradable():
    question = _text(keywords=(), points=2)
    report = grade_attempt(Quiz(title="T", questions=[_mcq(), question]), {"m1": 2, "t1": "anything"})
    answer = report.answers["t1"]
    assert answer.correct is None
    assert answer.points_awarded == 0
    assert answer.value == "anything"
    assert report.total == 3
    assert report.score == 33
    assert report.weak_areas == ["text-medium"]


def test_missing_answers_score_zero_with_repeated_weak_areas():
    quiz = Quiz(title="T", questions=[_mcq("a"), _mcq("b"), _text()])
    report = grade_attempt(quiz, {})
    assert report.score == 0
    assert report.weak_areas == ["mcq-easy", "mcq-easy", "text-medium"]
    assert report.answers["t1"].value == ""


def test_score_rounds_half_up():
    quiz = Quiz(title="T", questions=[_mcq("a", points=1), _mcq("b", points=7)])
    report = grade_attempt(quiz, {"a": 2, "b": 0})
    assert report.score == 13


def test_score_is_bounded(quiz):
    full = grade_attempt(quiz, {
        "q1": 1,
        "q2": "add the two numbers to get the sum",
        "q3": "function declaration: return a * b",
    })
    assert full.score == 100
    assert full.weak_areas == []
