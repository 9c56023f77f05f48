"""ORM models for the learning store.

The attendance table is dual-purpose: it is the streak history shown to
subscribers and the per-day dedup guard for scheduled dispatches. Dispatch
markers and completion markers are distinct types and must not be mixed.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from wordpanda.db.base import Base

# BIGSERIAL on PostgreSQL, rowid alias on SQLite.
PK = BigInteger().with_variant(Integer(), "sqlite")
JSONList = JSON().with_variant(JSONB(), "postgresql")

DISPATCH_MARKERS = frozenset({"morning_words", "morning_test", "lunch_test", "evening_review"})
COMPLETION_MARKERS = frozenset({"morning", "lunch", "evening"})
QUIZ_TYPES = ("morning", "lunch", "evening")


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------


class Subscriber(Base):
    """Maps to the 'subscribers' table."""

    __tablename__ = "subscribers"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")
    current_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    active_days: Mapped[list[int] | None] = mapped_column(JSONList, nullable=True)
    postponed_days: Mapped[list[int]] = mapped_column(JSONList, nullable=False, default=list)
    started_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_lesson_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_postponed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_subscribers_status_day", "status", "current_day"),)


class SubscriberSettings(Base):
    """Per-subscriber notification channels and send times."""

    __tablename__ = "subscriber_settings"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    email_enabled: Mapped[bool | None] = mapped_column(Boolean, default=True, server_default=true())
    telegram_enabled: Mapped[bool | None] = mapped_column(Boolean, default=False, server_default=false())
    telegram_chat_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    google_chat_enabled: Mapped[bool | None] = mapped_column(Boolean, default=False, server_default=false())
    google_chat_webhook: Mapped[str | None] = mapped_column(Text, nullable=True)
    morning_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    lunch_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    evening_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    words_per_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Catalog & config
# ---------------------------------------------------------------------------


class Word(Base):
    """Vocabulary catalog. Ordering within a day is insertion order (id)."""

    __tablename__ = "words"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    word: Mapped[str] = mapped_column(String(128), nullable=False)
    meaning: Mapped[str] = mapped_column(Text, nullable=False)


class ConfigEntry(Base):
    """Global key/value configuration (only TotalDays is read by dispatch)."""

    __tablename__ = "config"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


# ---------------------------------------------------------------------------
# Attendance ledger
# ---------------------------------------------------------------------------


class Attendance(Base):
    """Completion and dispatch markers, unique per (email, date, type)."""

    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint("email", "date", "type", name="attendance_email_date_type_key"),
        Index("idx_attendance_date_type", "date", "type"),
    )


# ---------------------------------------------------------------------------
# Learning history
# ---------------------------------------------------------------------------


class WrongWord(Base):
    """Long-lived miss history per (email, word). Never deleted."""

    __tablename__ = "wrong_words"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    word: Mapped[str] = mapped_column(String(128), nullable=False)
    meaning: Mapped[str] = mapped_column(Text, nullable=False, default="")
    wrong_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_wrong: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    next_review: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    mastered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        UniqueConstraint("email", "word", name="wrong_words_email_word_key"),
        Index("idx_wrong_words_email_mastered", "email", "mastered"),
    )


class QuizResult(Base):
    """Aggregate quiz submission. Append-only."""

    __tablename__ = "quiz_results"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    quiz_type: Mapped[str] = mapped_column(String(16), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)
    answers: Mapped[list[dict[str, Any]]] = mapped_column(JSONList, nullable=False, default=list)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class LegacyResult(Base):
    """Per-word result rows kept for historical compatibility."""

    __tablename__ = "results"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    quiz_type: Mapped[str] = mapped_column(String(16), nullable=False)
    word: Mapped[str] = mapped_column(String(128), nullable=False)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
