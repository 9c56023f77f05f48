"""Initial schema: subscribers, settings, catalog, attendance and learning history.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
JSON_LIST = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create every table the API and the dispatch worker use."""
    op.create_table(
        "subscribers",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(128), nullable=True),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("current_day", sa.Integer(), server_default="1", nullable=False),
        sa.Column("active_days", JSON_LIST, nullable=True),
        sa.Column("postponed_days", JSON_LIST, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("last_lesson_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_postponed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_subscribers_status_day", "subscribers", ["status", "current_day"])

    op.create_table(
        "subscriber_settings",
        sa.Column("email", sa.String(320), primary_key=True),
        sa.Column("email_enabled", sa.Boolean(), server_default=sa.true(), nullable=True),
        sa.Column("telegram_enabled", sa.Boolean(), server_default=sa.false(), nullable=True),
        sa.Column("telegram_chat_id", sa.String(64), nullable=True),
        sa.Column("google_chat_enabled", sa.Boolean(), server_default=sa.false(), nullable=True),
        sa.Column("google_chat_webhook", sa.Text(), nullable=True),
        sa.Column("morning_time", sa.String(5), nullable=True),
        sa.Column("lunch_time", sa.String(5), nullable=True),
        sa.Column("evening_time", sa.String(5), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("words_per_day", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "words",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("word", sa.String(128), nullable=False),
        sa.Column("meaning", sa.Text(), nullable=False),
    )
    op.create_index("ix_words_day", "words", ["day"])

    op.create_table(
        "config",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
    )

    op.create_table(
        "attendance",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=True),
        sa.UniqueConstraint("email", "date", "type", name="attendance_email_date_type_key"),
    )
    op.create_index("idx_attendance_date_type", "attendance", ["date", "type"])

    op.create_table(
        "wrong_words",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("word", sa.String(128), nullable=False),
        sa.Column("meaning", sa.Text(), nullable=False),
        sa.Column("wrong_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_wrong", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_review", sa.Date(), nullable=True),
        sa.Column("mastered", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.UniqueConstraint("email", "word", name="wrong_words_email_word_key"),
    )
    op.create_index("idx_wrong_words_email_mastered", "wrong_words", ["email", "mastered"])

    op.create_table(
        "quiz_results",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("quiz_type", sa.String(16), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("answers", JSON_LIST, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_quiz_results_email", "quiz_results", ["email"])

    op.create_table(
        "results",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("quiz_type", sa.String(16), nullable=False),
        sa.Column("word", sa.String(128), nullable=False),
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("user_answer", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_results_email", "results", ["email"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "results",
        "quiz_results",
        "wrong_words",
        "attendance",
        "config",
        "words",
        "subscriber_settings",
        "subscribers",
    ):
        op.drop_table(table)
