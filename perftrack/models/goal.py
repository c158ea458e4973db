"""Goal persistence model.

One row per goal. ``version`` backs optimistic concurrency: every write goes
through ``SqlGoalStore.put`` which issues ``UPDATE ... WHERE version = :expected``.

Enumerated columns are stored as VARCHAR to avoid PostgreSQL enum migration
pain; values are validated at the service layer.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Float, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from perftrack.database import Base


class GoalRow(Base):
    """Persisted SMART goal with habit streak and completion state.

    Lifecycle::

        active -> completed   (engine, when progress reaches 100%)
        active <-> paused     (user action)
        any    -> abandoned   (user action)
        completed -> active   (explicit reopen only)
    """

    __tablename__ = "goals"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Goal primary key",
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        comment="Owner of the goal",
    )

    # SMART description
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    specific: Mapped[str] = mapped_column(Text, nullable=False)
    measurable: Mapped[str] = mapped_column(Text, nullable=False)
    achievable: Mapped[str] = mapped_column(Text, nullable=False)
    relevant: Mapped[str] = mapped_column(Text, nullable=False)
    time_bound: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Deadline",
    )
    motivation_note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    category: Mapped[str] = mapped_column(String(32), nullable=False, default="performance")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")

    # Measurement
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    target_unit: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    current_value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    progress_percentage: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Derived from current/target (or streak/target for habits); may exceed 100",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        server_default="active",
        comment="active | completed | paused | abandoned",
    )

    # Habit tracking
    is_habit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    habit_frequency: Mapped[str | None] = mapped_column(
        String(16),
        nullable=True,
        comment="daily | weekly | monthly",
    )
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_checkin_unit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Cadence-unit ordinal of the latest counted check-in",
    )
    timezone: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Owner's IANA timezone for cadence evaluation",
    )

    completion_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set once when the goal first completes",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
        comment="Optimistic concurrency counter",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        Index("idx_goals_user_status", "user_id", "status"),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("status", "active")
        kwargs.setdefault("version", 1)
        kwargs.setdefault("created_at", datetime.now(UTC))
        kwargs.setdefault("updated_at", datetime.now(UTC))
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return (
            f"<GoalRow id={self.id} user={self.user_id} "
            f"status={self.status!r} version={self.version}>"
        )
