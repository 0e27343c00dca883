"""
Learner dashboard analytics computed from recorded attempts
"""
from collections import Counter
from typing import Any


RECENT_LIMIT = 10
WEAK_TOPIC_LIMIT = 5
HIGH_SCORE = 80


def compute_badges(attempts: list[dict[str, Any]]) -> list[str]:
    badges = []
    if len(attempts) >= 1:
        badges.append("first-quiz-complete")
    if len(attempts) >= 5:
        badges.append("consistency-starter")
    if sum(1 for a in attempts if (a.get("score") or 0) >= HIGH_SCORE) >= 3:
        badges.append("high-scorer")
    return badges


def summarize_analytics(attempts: list[dict[str, Any]], proctor_flags: int = 0) -> dict[str, Any]:
    """
    Summarize a learner's attempts (oldest first) for the dashboard.

    Args:
        attempts:      Attempt dicts as stored, oldest first
        proctor_flags: Number of proctor events stored for the learner

    Returns:
        dict with totals, score trend, most frequent weak areas and badges
    """
    total_attempts = len(attempts)
    avg_score = (
        round(sum(float(a.get("score") or 0) for a in attempts) / total_attempts, 2)
        if total_attempts
        else 0
    )

    recent_attempts = attempts[-RECENT_LIMIT:]
    score_trend = [{"at": a.get("createdAt"), "score": a.get("score") or 0} for a in recent_attempts]

    # every occurrence counts, including repeats within one attempt
    weakness = Counter(area for a in attempts for area in a.get("weakAreas") or [])
    weak_topics = [
        {"topic": topic, "count": count} for topic, count in weakness.most_common(WEAK_TOPIC_LIMIT)
    ]

    return {
        "totalAttempts": total_attempts,
        "avgScore": avg_score,
        "proctorFlags": proctor_flags,
        "scoreTrend": score_trend,
        "weakTopics": weak_topics,
        "badges": compute_badges(attempts),
        "recentAttempts": recent_attempts,
    }
