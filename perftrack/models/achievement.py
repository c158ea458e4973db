"""Achievement catalog and per-user achievement progress."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from perftrack.database import Base


class AchievementDefinitionRow(Base):
    """Read-only catalog entry. Not owned by any user."""

    __tablename__ = "achievement_definitions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    icon: Mapped[str] = mapped_column(String(32), nullable=False, default="trophy")
    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="training | sleep | recovery | consistency | milestones",
    )
    metric: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Key read from the event's metrics",
    )
    max_progress: Mapped[float] = mapped_column(Float, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_achievement_definitions_category", "category"),
    )


class UserAchievementRow(Base):
    """A user's progress toward one definition. Never deleted."""

    __tablename__ = "user_achievements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    definition_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("achievement_definitions.id"),
        nullable=False,
    )
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    earned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    earned_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
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
        UniqueConstraint("user_id", "definition_id", name="uq_user_achievements_user_definition"),
        Index("idx_user_achievements_user", "user_id"),
    )

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("id", uuid.uuid4())
        kwargs.setdefault("progress", 0.0)
        kwargs.setdefault("earned", False)
        super().__init__(**kwargs)
