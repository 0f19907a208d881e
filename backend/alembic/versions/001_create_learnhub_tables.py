"""Create LearnHub tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: notes tree, speaking sessions, curriculum and
       progress, workout tracker.
How:   Generic SQLAlchemy types (Uuid, JSON, timezone-aware DateTime) so the
       same migration runs on PostgreSQL and SQLite.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=NOW)


def upgrade() -> None:
    # ── AI-learning tree ──────────────────────────────────────────────────
    op.create_table(
        "ai_learning_nodes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "parent_id",
            sa.Uuid(),
            sa.ForeignKey("ai_learning_nodes.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("path", sa.JSON(), nullable=False),
        # Canonical JSON of `path`; unique per tree position
        sa.Column("path_key", sa.Text(), nullable=False, unique=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_ai_learning_nodes_parent_id", "ai_learning_nodes", ["parent_id"])
    op.create_index(
        "idx_ai_learning_nodes_parent_name", "ai_learning_nodes", ["parent_id", "name"]
    )

    # ── Speaking practice ─────────────────────────────────────────────────
    op.create_table(
        "speaking_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("lesson", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(500), nullable=False),
        sa.Column("speech_text", sa.Text(), nullable=False),
        sa.Column("ai_feedback", sa.JSON(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("overall_score", sa.Integer(), nullable=True),
        sa.Column("topic_content", sa.JSON(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index(
        "idx_speaking_sessions_subject_lesson",
        "speaking_sessions",
        ["subject", "lesson", "created_at"],
    )

    # ── Curriculum ────────────────────────────────────────────────────────
    op.create_table(
        "subjects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("label", sa.String(255), nullable=False),
    )
    op.create_table(
        "lessons",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "subject_id",
            sa.Uuid(),
            sa.ForeignKey("subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("subject_id", "name", name="uq_lessons_subject_name"),
    )
    op.create_index("ix_lessons_subject_id", "lessons", ["subject_id"])
    op.create_table(
        "topics",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "lesson_id",
            sa.Uuid(),
            sa.ForeignKey("lessons.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("mastery_count", sa.Integer(), nullable=True, server_default=sa.text("0")),
        sa.Column("last_mastered", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("lesson_id", "name", name="uq_topics_lesson_name"),
    )
    op.create_index("ix_topics_lesson_id", "topics", ["lesson_id"])
    op.create_table(
        "questions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "topic_id",
            sa.Uuid(),
            sa.ForeignKey("topics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("image_before", sa.String(1024), nullable=True),
        sa.Column("image_after", sa.String(1024), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_questions_topic_id", "questions", ["topic_id"])
    op.create_table(
        "user_progress",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("mastery_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_mastered", sa.DateTime(timezone=True), nullable=True),
        _timestamp("updated_at"),
        sa.UniqueConstraint("subject", "topic", name="uq_user_progress_subject_topic"),
    )

    # ── Workout tracker ───────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_table(
        "user_stats",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("current_weight", sa.Float(), nullable=False),
        sa.Column("target_weight", sa.Float(), nullable=True),
        sa.Column("weekly_weight_loss", sa.Float(), nullable=True),
        sa.Column("bmr", sa.Float(), nullable=True),
        sa.Column("maintenance_calories", sa.Float(), nullable=True),
        sa.Column("target_daily_calories", sa.Float(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_user_stats_user_id", "user_stats", ["user_id"])
    op.create_table(
        "daily_tracking",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("total_calories_in", sa.Float(), nullable=False),
        sa.Column("total_calories_out", sa.Float(), nullable=False),
        sa.Column("net_calories", sa.Float(), nullable=False),
        sa.Column("deficit_created", sa.Float(), nullable=False),
        sa.Column("expected_weight_loss", sa.Float(), nullable=False),
        sa.Column("bmr_used", sa.Float(), nullable=True),
        sa.Column("maintenance_used", sa.Float(), nullable=True),
        sa.Column("target_calories_used", sa.Float(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_tracking_user_date"),
    )
    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column(
            "daily_tracking_id",
            sa.Uuid(),
            sa.ForeignKey("daily_tracking.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("calories", sa.Float(), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("parameters", sa.JSON(), nullable=True),
        sa.Column("ai_calculated", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_daily_tracking_id", "activities", ["daily_tracking_id"])
    op.create_table(
        "weight_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "date", name="uq_weight_history_user_date"),
    )
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("response", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(30), nullable=False),
        sa.Column("ai_model", sa.String(100), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_chat_messages_user_id", "chat_messages", ["user_id"])


def downgrade() -> None:
    for table in (
        "chat_messages",
        "weight_history",
        "activities",
        "daily_tracking",
        "user_stats",
        "users",
        "user_progress",
        "questions",
        "topics",
        "lessons",
        "subjects",
        "speaking_sessions",
        "ai_learning_nodes",
    ):
        op.drop_table(table)
