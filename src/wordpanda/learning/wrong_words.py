"""Wrong-word tracking: miss counts, mastery and the next review date.

``wrong_count`` only ever grows. Mastering a word freezes the count; missing
it again clears ``mastered`` and increments from the frozen value.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import WrongWord
from wordpanda.db.upsert import upsert

logger = logging.getLogger(__name__)

# Days until the next review, indexed by wrong_count - 1.
REVIEW_INTERVALS_DAYS = (1, 2, 4, 7, 14)
EVENING_WRONG_WORD_LIMIT = 20


@dataclass(frozen=True)
class WrongWordItem:
    word: str
    meaning: str
    wrong_count: int


def next_review_date(last_wrong: dt.datetime, wrong_count: int, tz_name: str) -> dt.date:
    """Local date of ``last_wrong`` plus the ladder interval for ``wrong_count``."""
    index = min(max(wrong_count, 1), len(REVIEW_INTERVALS_DAYS)) - 1
    local_day = last_wrong.astimezone(ZoneInfo(tz_name)).date()
    return local_day + dt.timedelta(days=REVIEW_INTERVALS_DAYS[index])


def miss_row(
    email: str,
    word: str,
    meaning: str,
    prior_count: int,
    now: dt.datetime,
    tz_name: str,
) -> dict:
    wrong_count = prior_count + 1
    return {
        "email": email,
        "word": word,
        "meaning": meaning,
        "wrong_count": wrong_count,
        "last_wrong": now,
        "next_review": next_review_date(now, wrong_count, tz_name),
        "mastered": False,
    }


def mastered_row(existing: WrongWord, now: dt.datetime) -> dict:
    return {
        "email": existing.email,
        "word": existing.word,
        "meaning": existing.meaning,
        "wrong_count": existing.wrong_count,
        "last_wrong": now,
        "next_review": existing.next_review,
        "mastered": True,
    }


async def fetch_entries(db: AsyncSession, email: str, words: Iterable[str]) -> dict[str, WrongWord]:
    """Existing entries for ``email`` restricted to ``words``. One query."""
    word_list = list(set(words))
    if not word_list:
        return {}
    result = await db.execute(
        select(WrongWord).where(WrongWord.email == email, WrongWord.word.in_(word_list))
    )
    return {entry.word: entry for entry in result.scalars().all()}


async def upsert_entries(db: AsyncSession, rows: Mapping[str, dict] | list[dict]) -> None:
    """One multi-row upsert on (email, word). Rows must already be unique per word."""
    values = list(rows.values()) if isinstance(rows, Mapping) else rows
    await upsert(db, WrongWord, values, conflict_columns=["email", "word"])


async def top_unmastered_by_email(
    db: AsyncSession,
    emails: Iterable[str],
    limit: int = EVENING_WRONG_WORD_LIMIT,
) -> dict[str, list[WrongWordItem]]:
    """Most-missed unmastered words per subscriber, for a whole batch in one query."""
    email_list = list(emails)
    if not email_list:
        return {}
    result = await db.execute(
        select(WrongWord.email, WrongWord.word, WrongWord.meaning, WrongWord.wrong_count)
        .where(WrongWord.email.in_(email_list), WrongWord.mastered.is_(False))
        .order_by(WrongWord.email, WrongWord.wrong_count.desc(), WrongWord.id)
    )
    grouped: dict[str, list[WrongWordItem]] = {}
    for email, word, meaning, wrong_count in result.all():
        bucket = grouped.setdefault(email, [])
        if len(bucket) < limit:
            bucket.append(WrongWordItem(word=word, meaning=meaning, wrong_count=wrong_count))
    return grouped


async def list_wrong_words(db: AsyncSession, email: str, include_mastered: bool = False) -> list[WrongWord]:
    query = select(WrongWord).where(WrongWord.email == email)
    if not include_mastered:
        query = query.where(WrongWord.mastered.is_(False))
    result = await db.execute(query.order_by(WrongWord.wrong_count.desc(), WrongWord.id))
    return list(result.scalars().all())


async def relearn(
    db: AsyncSession,
    email: str,
    word: str,
    meaning: str,
    tz_name: str,
    now: dt.datetime | None = None,
) -> WrongWord:
    """Count one more miss for ``word``; used by the lunch-test relearn link."""
    now = now or dt.datetime.now(dt.timezone.utc)
    existing = (await fetch_entries(db, email, [word])).get(word)
    prior = existing.wrong_count if existing else 0
    await upsert_entries(db, [miss_row(email, word, meaning or (existing.meaning if existing else ""), prior, now, tz_name)])
    await db.commit()
    logger.info("Relearn recorded for %s: %s (count %d)", email, word, prior + 1)

    result = await db.execute(
        select(WrongWord)
        .where(WrongWord.email == email, WrongWord.word == word)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()
