"""Append-only log of progress events.

``event_id`` is supplied by the caller and is globally unique; the unique
constraint is what makes replays detectable even under races.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from perftrack.database import Base


class ProgressEventRow(Base):
    __tablename__ = "goal_progress_events"

    event_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Caller-supplied idempotency key",
    )
    goal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the value was observed",
    )
    source: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="manual",
        comment="manual | derived",
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_goal_progress_events_goal_ts", "goal_id", "timestamp"),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("recorded_at", datetime.now(UTC))
        super().__init__(**kwargs)
