"""Per-subscriber study statistics."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import COMPLETION_MARKERS, Attendance, Subscriber, WrongWord
from wordpanda.learning.wrong_words import WrongWordItem

RECENT_WRONG_LIMIT = 5


@dataclass
class StudyStats:
    current_day: int
    total_days: int
    streak: int
    schedule: dict[str, bool]
    total_wrong: int
    mastered_count: int
    total_study_days: int
    avg_mastered_per_day: float
    recent_wrong: list[WrongWordItem] = field(default_factory=list)


def compute_streak(completed_dates: Iterable[dt.date], today: dt.date) -> int:
    """Consecutive days ending at ``today`` that have at least one completion."""
    dates = set(completed_dates)
    streak = 0
    cursor = today
    while cursor in dates:
        streak += 1
        cursor -= dt.timedelta(days=1)
    return streak


async def get_stats(db: AsyncSession, email: str, today: dt.date, total_days: int) -> StudyStats:
    attendance = await db.execute(
        select(Attendance.date, Attendance.type).where(
            Attendance.email == email,
            Attendance.completed.is_(True),
            Attendance.type.in_(sorted(COMPLETION_MARKERS)),
        )
    )
    rows = attendance.all()
    completed_dates = {row.date for row in rows}
    today_types = {row.type for row in rows if row.date == today}

    mastered_count = (
        await db.execute(
            select(func.count()).select_from(WrongWord).where(WrongWord.email == email, WrongWord.mastered.is_(True))
        )
    ).scalar_one()
    unmastered = await db.execute(
        select(WrongWord.word, WrongWord.meaning, WrongWord.wrong_count)
        .where(WrongWord.email == email, WrongWord.mastered.is_(False))
        .order_by(WrongWord.wrong_count.desc(), WrongWord.id)
    )
    unmastered_rows = unmastered.all()

    current_day = (
        await db.execute(select(Subscriber.current_day).where(Subscriber.email == email))
    ).scalar_one_or_none() or 1

    study_days = len(completed_dates)
    return StudyStats(
        current_day=current_day,
        total_days=total_days,
        streak=compute_streak(completed_dates, today),
        schedule={marker: marker in today_types for marker in ("morning", "lunch", "evening")},
        total_wrong=len(unmastered_rows),
        mastered_count=mastered_count,
        total_study_days=study_days,
        avg_mastered_per_day=round(mastered_count / study_days, 1) if study_days else 0.0,
        recent_wrong=[
            WrongWordItem(word=w, meaning=m, wrong_count=c) for w, m, c in unmastered_rows[:RECENT_WRONG_LIMIT]
        ],
    )
