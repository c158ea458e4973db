"""Create goal, progress event and achievement tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

Tables:
  goals                    SMART goals with habit streaks and a ``version``
                           column for optimistic concurrency
  goal_progress_events     Append-only progress log; ``event_id`` PK makes
                           replays detectable
  achievement_definitions  Read-only catalog, seeded with the defaults
  user_achievements        Per-user progress, unique on (user_id, definition_id)

Notes:
  - Enumerated columns are VARCHAR to avoid PostgreSQL enum migration pain.
  - No FK from goals.user_id; users live in the external identity provider.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from perftrack.services.catalog import DEFAULT_DEFINITIONS

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "goals",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False, comment="Goal primary key"),
        sa.Column("user_id", sa.Uuid(), nullable=False, comment="Owner of the goal"),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("specific", sa.Text(), nullable=False),
        sa.Column("measurable", sa.Text(), nullable=False),
        sa.Column("achievable", sa.Text(), nullable=False),
        sa.Column("relevant", sa.Text(), nullable=False),
        sa.Column("time_bound", sa.Date(), nullable=True, comment="Deadline"),
        sa.Column("motivation_note", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(32), nullable=False, server_default="performance"),
        sa.Column("priority", sa.String(16), nullable=False, server_default="medium"),
        sa.Column("target_value", sa.Float(), nullable=False),
        sa.Column("target_unit", sa.String(50), nullable=False, server_default=""),
        sa.Column("current_value", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "progress_percentage",
            sa.BigInteger(),
            nullable=False,
            server_default="0",
            comment="Derived from current/target (or streak/target for habits); may exceed 100",
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default="active",
            comment="active | completed | paused | abandoned",
        ),
        sa.Column("is_habit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "habit_frequency",
            sa.String(16),
            nullable=True,
            comment="daily | weekly | monthly",
        ),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "last_checkin_unit",
            sa.Integer(),
            nullable=True,
            comment="Cadence-unit ordinal of the latest counted check-in",
        ),
        sa.Column(
            "timezone",
            sa.String(64),
            nullable=True,
            comment="Owner's IANA timezone for cadence evaluation",
        ),
        sa.Column(
            "completion_date",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Set once when the goal first completes",
        ),
        sa.Column(
            "version",
            sa.Integer(),
            nullable=False,
            server_default="1",
            comment="Optimistic concurrency counter",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_goals_user_status", "goals", ["user_id", "status"])

    op.create_table(
        "goal_progress_events",
        sa.Column(
            "event_id",
            sa.String(128),
            primary_key=True,
            nullable=False,
            comment="Caller-supplied idempotency key",
        ),
        sa.Column(
            "goal_id",
            sa.Uuid(),
            sa.ForeignKey("goals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the value was observed",
        ),
        sa.Column(
            "source",
            sa.String(16),
            nullable=False,
            server_default="manual",
            comment="manual | derived",
        ),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "recorded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_goal_progress_events_goal_ts",
        "goal_progress_events",
        ["goal_id", "timestamp"],
    )

    definitions = op.create_table(
        "achievement_definitions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("icon", sa.String(32), nullable=False, server_default="trophy"),
        sa.Column(
            "category",
            sa.String(32),
            nullable=False,
            comment="training | sleep | recovery | consistency | milestones",
        ),
        sa.Column(
            "metric",
            sa.String(64),
            nullable=False,
            comment="Key read from the event's metrics",
        ),
        sa.Column("max_progress", sa.Float(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index(
        "idx_achievement_definitions_category",
        "achievement_definitions",
        ["category"],
    )

    op.create_table(
        "user_achievements",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "definition_id",
            sa.Uuid(),
            sa.ForeignKey("achievement_definitions.id"),
            nullable=False,
        ),
        sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("earned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("earned_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "definition_id", name="uq_user_achievements_user_definition"
        ),
    )
    op.create_index("idx_user_achievements_user", "user_achievements", ["user_id"])

    op.bulk_insert(
        definitions,
        [
            {
                "id": d.id,
                "code": d.code,
                "title": d.title,
                "description": d.description,
                "icon": d.icon,
                "category": str(d.category),
                "metric": d.metric,
                "max_progress": d.max_progress,
                "points": d.points,
                "active": d.active,
            }
            for d in DEFAULT_DEFINITIONS
        ],
    )


def downgrade() -> None:
    op.drop_index("idx_user_achievements_user", table_name="user_achievements")
    op.drop_table("user_achievements")
    op.drop_index("idx_achievement_definitions_category", table_name="achievement_definitions")
    op.drop_table("achievement_definitions")
    op.drop_index("idx_goal_progress_events_goal_ts", table_name="goal_progress_events")
    op.drop_table("goal_progress_events")
    op.drop_index("idx_goals_user_status", table_name="goals")
    op.drop_table("goals")
