"""Таблицы совместных привычек

Revision ID: 0001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

habit_category_enum = sa.Enum("SPIRITUAL", "HEALTH", "LEARNING", "DISCIPLINE", "CUSTOM", name="habit_category_enum")
participant_status_enum = sa.Enum("PENDING", "ACCEPTED", "DECLINED", name="participant_status_enum")
day_state_enum = sa.Enum("EMPTY", "PARTIALLY_COMPLETE", "FULLY_COMPLETE", name="day_state_enum")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Время создания записи",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Время последнего обновления записи",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)

    op.create_table(
        "shared_habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", habit_category_enum, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False),
        sa.Column("longest_streak", sa.Integer(), nullable=False),
        sa.Column("last_completed_date", sa.Date(), nullable=True),
        sa.Column("consecutive_days", sa.JSON(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("successful_days", sa.Integer(), nullable=False),
        sa.Column("failed_days", sa.Integer(), nullable=False),
        sa.Column("success_rate", sa.Integer(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False),
        sa.Column("notify_on_streak", sa.Boolean(), nullable=False),
        sa.Column("notify_on_break", sa.Boolean(), nullable=False),
        sa.Column("reminder_enabled", sa.Boolean(), nullable=False),
        sa.Column("reminder_time", sa.Time(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["users.id"],
            name=op.f("fk_shared_habits_created_by_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shared_habits")),
    )
    op.create_index(op.f("ix_shared_habits_created_by"), "shared_habits", ["created_by"], unique=False)
    op.create_index(op.f("ix_shared_habits_id"), "shared_habits", ["id"], unique=False)
    op.create_index(op.f("ix_shared_habits_is_active"), "shared_habits", ["is_active"], unique=False)

    op.create_table(
        "shared_habit_participants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("status", participant_status_enum, nullable=False),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["habit_id"],
            ["shared_habits.id"],
            name=op.f("fk_shared_habit_participants_habit_id_shared_habits"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_shared_habit_participants_user_id_users"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shared_habit_participants")),
        sa.UniqueConstraint("habit_id", "email", name="uq_shared_habit_participant_email"),
    )
    op.create_index(
        op.f("ix_shared_habit_participants_email"), "shared_habit_participants", ["email"], unique=False
    )
    op.create_index(
        op.f("ix_shared_habit_participants_habit_id"), "shared_habit_participants", ["habit_id"], unique=False
    )
    op.create_index(op.f("ix_shared_habit_participants_id"), "shared_habit_participants", ["id"], unique=False)
    op.create_index(
        op.f("ix_shared_habit_participants_user_id"), "shared_habit_participants", ["user_id"], unique=False
    )

    op.create_table(
        "shared_habit_day_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("state", day_state_enum, nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["habit_id"],
            ["shared_habits.id"],
            name=op.f("fk_shared_habit_day_records_habit_id_shared_habits"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shared_habit_day_records")),
        sa.UniqueConstraint("habit_id", "day", name="uq_shared_habit_day_record_per_day"),
    )
    op.create_index(op.f("ix_shared_habit_day_records_day"), "shared_habit_day_records", ["day"], unique=False)
    op.create_index(
        op.f("ix_shared_habit_day_records_habit_id"), "shared_habit_day_records", ["habit_id"], unique=False
    )
    op.create_index(op.f("ix_shared_habit_day_records_id"), "shared_habit_day_records", ["id"], unique=False)

    op.create_table(
        "shared_habit_completions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day_record_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["day_record_id"],
            ["shared_habit_day_records.id"],
            name=op.f("fk_shared_habit_completions_day_record_id_shared_habit_day_records"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_shared_habit_completions_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_shared_habit_completions")),
        sa.UniqueConstraint("day_record_id", "user_id", name="uq_shared_habit_completion_per_user"),
    )
    op.create_index(
        op.f("ix_shared_habit_completions_day_record_id"),
        "shared_habit_completions",
        ["day_record_id"],
        unique=False,
    )
    op.create_index(op.f("ix_shared_habit_completions_id"), "shared_habit_completions", ["id"], unique=False)
    op.create_index(
        op.f("ix_shared_habit_completions_user_id"), "shared_habit_completions", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("shared_habit_completions")
    op.drop_table("shared_habit_day_records")
    op.drop_table("shared_habit_participants")
    op.drop_table("shared_habits")
    op.drop_table("users")

    bind = op.get_bind()
    day_state_enum.drop(bind, checkfirst=True)
    participant_status_enum.drop(bind, checkfirst=True)
    habit_category_enum.drop(bind, checkfirst=True)
