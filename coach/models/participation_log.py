"""ParticipationLog ORM: one row per finished conversation, keyed by user_session_id.

Invariants:
    - id is UUID primary key; its string form is the session's user_session_id
    - The row is created once at end of conversation, then updated in place
    - Metric columns are nullable until the evaluation is saved

Design Decisions:
    - feedback stored as one JSON document (strengths/improvements/tips/big picture)
    - Speech metrics and PISA scores as scalar columns for admin queries
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Float, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import Uuid

from coach.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ParticipationLog(Base):
    __tablename__ = "participation_log"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    session_id: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True,
    )
    transcript_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflection: Mapped[str | None] = mapped_column(Text, nullable=True)

    feedback: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    words_per_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    filler_words_per_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    participation_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pisa_shared_understanding: Mapped[float | None] = mapped_column(Float, nullable=True)
    pisa_problem_solving_action: Mapped[float | None] = mapped_column(Float, nullable=True)
    pisa_team_organization: Mapped[float | None] = mapped_column(Float, nullable=True)
    overall_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    detailed_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
