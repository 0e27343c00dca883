"""
Per-learner analytics datastore: recorded attempts, proctor events, badges.

Writes for one learner are serialized with a per-user lock and each write is
a single transaction, so concurrent recordings for the same user never lose
updates and a failed recording leaves nothing behind.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codecoach.core.errors import AttemptRecordError
from codecoach.models.db import AttemptRecord, Learner, ProctorEventRecord
from codecoach.models.quiz import Attempt, ProctorEvent
from codecoach.utils.analytics import compute_badges, summarize_analytics
from codecoach.utils.coercion import clamp_number, string_list, text_or


logger = logging.getLogger(__name__)

ATTEMPT_LIMIT = 300
PROCTOR_EVENT_LIMIT = 500
WEAK_AREA_LIMIT = 8


def coerce_attempt(payload: Mapping[str, Any]) -> dict[str, Any]:
    summary = payload.get("proctorSummary")
    return {
        "quiz_title": text_or(payload.get("quizTitle"), "Quiz")[:255],
        "score": clamp_number(payload.get("score"), 0, 100, 0),
        "total_questions": clamp_number(payload.get("totalQuestions"), 1, 100, 1),
        "duration_sec": clamp_number(payload.get("durationSec"), 0, 14400, 0),
        "weak_areas": string_list(payload.get("weakAreas"))[:WEAK_AREA_LIMIT],
        "proctor_summary": summary if isinstance(summary, dict) else None,
    }


def _attempt_dict(record: AttemptRecord) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "quizTitle": record.quiz_title,
        "score": record.score,
        "totalQuestions": record.total_questions,
        "durationSec": record.duration_sec,
        "weakAreas": list(record.weak_areas or []),
        "proctorSummary": record.proctor_summary,
    }


class AnalyticsStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        self._sessionmaker = sessionmaker
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _learner(self, db: AsyncSession, user_id: str) -> Learner:
        learner = await db.get(Learner, user_id)
        if learner is None:
            learner = Learner(user_id=user_id, badges=[])
            db.add(learner)
            await db.flush()
        return learner

    async def _attempts(self, db: AsyncSession, user_id: str) -> list[dict[str, Any]]:
        rows = await db.execute(
            select(AttemptRecord)
            .where(AttemptRecord.user_id == user_id)
            .order_by(AttemptRecord.created_at.asc())
        )
        return [_attempt_dict(record) for record in rows.scalars().all()]

    async def _prune(self, db: AsyncSession, model: type, user_id: str, keep: int) -> None:
        stale = await db.execute(
            select(model.id)
            .where(model.user_id == user_id)
            .order_by(model.created_at.desc() if model is AttemptRecord else model.at.desc())
            .offset(keep)
        )
        stale_ids = list(stale.scalars().all())
        if stale_ids:
            await db.execute(delete(model).where(model.id.in_(stale_ids)))

    async def record_attempt(self, user_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        values = coerce_attempt(payload)
        now = datetime.now(timezone.utc)
        async with self._locks[user_id]:
            try:
                async with self._sessionmaker() as db, db.begin():
                    learner = await self._learner(db, user_id)
                    record = AttemptRecord(user_id=user_id, created_at=now, **values)
                    db.add(record)
                    await db.flush()
                    await self._prune(db, AttemptRecord, user_id, ATTEMPT_LIMIT)
                    learner.badges = compute_badges(await self._attempts(db, user_id))
                    learner.updated_at = now
            except SQLAlchemyError as exc:
                logger.exception("Failed to record attempt for %s", user_id)
                raise AttemptRecordError("Failed to record attempt", str(exc)) from exc
        logger.info(
            "Attempt recorded",
            extra={"user_id": user_id, "score": values["score"], "quiz_title": values["quiz_title"]},
        )
        return _attempt_dict(record)

    async def record_proctor_event(self, user_id: str, event_type: str, detail: str = "") -> None:
        now = datetime.now(timezone.utc)
        async with self._locks[user_id]:
            try:
                async with self._sessionmaker() as db, db.begin():
                    await self._learner(db, user_id)
                    db.add(ProctorEventRecord(user_id=user_id, at=now, type=str(event_type), detail=str(detail or "")))
                    await db.flush()
                    await self._prune(db, ProctorEventRecord, user_id, PROCTOR_EVENT_LIMIT)
            except SQLAlchemyError as exc:
                logger.exception("Failed to log proctor event for %s", user_id)
                raise AttemptRecordError("Failed to log proctor event", str(exc)) from exc

    async def summary(self, user_id: str) -> dict[str, Any]:
        async with self._sessionmaker() as db:
            attempts = await self._attempts(db, user_id)
            flags = await db.scalar(
                select(func.count(ProctorEventRecord.id)).where(ProctorEventRecord.user_id == user_id)
            )
        return summarize_analytics(attempts, flags or 0)

    def for_user(self, user_id: str) -> "LearnerSink":
        return LearnerSink(self, user_id)


class LearnerSink:
    """``AttemptSink`` that records a session's attempt for one learner."""

    def __init__(self, store: AnalyticsStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id

    async def record_attempt(self, attempt: Attempt) -> None:
        await self.store.record_attempt(self.user_id, attempt.to_dict())

    async def record_proctor_events(self, events: list[ProctorEvent]) -> None:
        for event in events:
            await self.store.record_proctor_event(self.user_id, event.type, event.detail)
