"""Quiz submission: aggregate result, wrong-word updates, legacy rows, attendance.

The four writes run concurrently on independent sessions. Only the aggregate
quiz_results write is fatal; the others are logged and skipped on failure.
"""

from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import Sequence
from dataclasses import dataclass

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wordpanda.db.models import QUIZ_TYPES, LegacyResult, QuizResult
from wordpanda.dispatch.clock import local_clock
from wordpanda.dispatch.dedup import record_marker
from wordpanda.learning.wrong_words import fetch_entries, mastered_row, miss_row, upsert_entries

logger = structlog.get_logger()


class QuizSubmissionError(ValueError):
    """The submission was rejected before any write."""


class QuizPersistenceError(RuntimeError):
    """The aggregate quiz result could not be stored."""


@dataclass(frozen=True)
class QuizAnswer:
    word: str
    meaning: str
    memorized: bool


@dataclass(frozen=True)
class QuizOutcome:
    score: int
    total: int


def validate_submission(email: str, day: int, quiz_type: str, answers: Sequence[QuizAnswer]) -> None:
    if not email:
        msg = "email is required"
        raise QuizSubmissionError(msg)
    if day < 1:
        msg = "day must be >= 1"
        raise QuizSubmissionError(msg)
    if quiz_type not in QUIZ_TYPES:
        msg = f"quiz_type must be one of {', '.join(QUIZ_TYPES)}"
        raise QuizSubmissionError(msg)
    if not answers:
        msg = "answers must not be empty"
        raise QuizSubmissionError(msg)


def plan_wrong_word_rows(
    email: str,
    answers: Sequence[QuizAnswer],
    existing: dict,
    now: dt.datetime,
    tz_name: str,
) -> dict[str, dict]:
    """Rows to upsert, keyed by word; a later answer for the same word replaces an earlier one."""
    rows: dict[str, dict] = {}
    for answer in answers:
        entry = existing.get(answer.word)
        if answer.memorized:
            rows.pop(answer.word, None)
            if entry is not None:
                rows[answer.word] = mastered_row(entry, now)
        else:
            prior = entry.wrong_count if entry is not None else 0
            rows[answer.word] = miss_row(email, answer.word, answer.meaning, prior, now, tz_name)
    return rows


async def submit_quiz(
    session_factory: async_sessionmaker[AsyncSession],
    email: str,
    day: int,
    quiz_type: str,
    answers: Sequence[QuizAnswer],
    tz_name: str,
    now: dt.datetime | None = None,
) -> QuizOutcome:
    """Record one quiz submission.

    Raises:
        QuizSubmissionError: Invalid input; nothing was written.
        QuizPersistenceError: The aggregate result write failed.
    """
    validate_submission(email, day, quiz_type, answers)
    now = now or dt.datetime.now(dt.timezone.utc)
    today = local_clock(tz_name, now).today
    score = sum(1 for a in answers if a.memorized)
    total = len(answers)

    async with session_factory() as db:
        existing = await fetch_entries(db, email, [a.word for a in answers])
    wrong_rows = plan_wrong_word_rows(email, answers, existing, now, tz_name)

    async def write_quiz_result() -> None:
        async with session_factory() as db:
            db.add(
                QuizResult(
                    email=email,
                    day=day,
                    quiz_type=quiz_type,
                    score=score,
                    total=total,
                    answers=[{"word": a.word, "meaning": a.meaning, "memorized": a.memorized} for a in answers],
                    created_at=now,
                )
            )
            await db.commit()

    async def write_wrong_words() -> None:
        if not wrong_rows:
            return
        async with session_factory() as db:
            await upsert_entries(db, wrong_rows)
            await db.commit()

    async def write_legacy_results() -> None:
        async with session_factory() as db:
            await db.execute(
                insert(LegacyResult).values(
                    [
                        {
                            "email": email,
                            "day": day,
                            "quiz_type": quiz_type,
                            "word": a.word,
                            "correct_answer": a.meaning,
                            "user_answer": a.meaning if a.memorized else "",
                            "is_correct": a.memorized,
                            "timestamp": now,
                        }
                        for a in answers
                    ]
                )
            )
            await db.commit()

    async def write_attendance() -> None:
        async with session_factory() as db:
            await record_marker(db, email, today, quiz_type, day=day)

    quiz_error, *side_errors = await asyncio.gather(
        write_quiz_result(),
        write_wrong_words(),
        write_legacy_results(),
        write_attendance(),
        return_exceptions=True,
    )
    for name, error in zip(("wrong_words", "legacy_results", "attendance"), side_errors):
        if isinstance(error, Exception):
            logger.warning("quiz_side_write_failed", write=name, email=email, error=str(error))

    if isinstance(quiz_error, Exception):
        logger.error("quiz_result_write_failed", email=email, day=day, error=str(quiz_error))
        msg = "Failed to store quiz result"
        raise QuizPersistenceError(msg) from quiz_error

    logger.info("quiz_submitted", email=email, day=day, quiz_type=quiz_type, score=score, total=total)
    return QuizOutcome(score=score, total=total)


async def get_quiz_history(db: AsyncSession, email: str, day: int | None = None, limit: int = 50) -> list[QuizResult]:
    query = select(QuizResult).where(QuizResult.email == email)
    if day is not None:
        query = query.where(QuizResult.day == day)
    result = await db.execute(query.order_by(QuizResult.created_at.desc(), QuizResult.id.desc()).limit(limit))
    return list(result.scalars().all())
