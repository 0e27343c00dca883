import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Learner(Base):
    __tablename__ = "learners"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    badges: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    attempts: Mapped[list["AttemptRecord"]] = relationship("AttemptRecord", back_populates="learner")
    proctor_events: Mapped[list["ProctorEventRecord"]] = relationship(
        "ProctorEventRecord", back_populates="learner"
    )


class AttemptRecord(Base):
    __tablename__ = "attempts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("learners.user_id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    quiz_title: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_sec: Mapped[int] = mapped_column(Integer, nullable=False)
    weak_areas: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    proctor_summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    learner: Mapped[Learner] = relationship("Learner", back_populates="attempts")


class ProctorEventRecord(Base):
    __tablename__ = "proctor_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("learners.user_id"), nullable=False, index=True
    )
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")

    learner: Mapped[Learner] = relationship("Learner", back_populates="proctor_events")
