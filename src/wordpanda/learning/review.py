"""Weighted review queue.

Each candidate enters a sampling pool once plus ``priority`` extra copies.
The pool is shuffled uniformly and first occurrences are kept, so words
missed more often tend to surface earlier without a fixed order.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import Subscriber, Word
from wordpanda.learning.wrong_words import list_wrong_words

MAX_PRIORITY = 10
POSTPONED_PRIORITY = 1


@dataclass(frozen=True)
class ReviewItem:
    word: str
    meaning: str
    priority: int
    source: str  # "wrong" or "postponed"
    wrong_count: int = 0
    day: int | None = None


def wrong_word_priority(wrong_count: int) -> int:
    return min(max(wrong_count, 0) * 2, MAX_PRIORITY)


def weighted_shuffle(items: Sequence[ReviewItem], rng: random.Random | None = None) -> list[ReviewItem]:
    rng = rng or random.Random()
    pool: list[int] = []
    for index, item in enumerate(items):
        pool.extend([index] * (1 + max(item.priority, 0)))
    rng.shuffle(pool)

    seen: set[int] = set()
    ordered: list[ReviewItem] = []
    for index in pool:
        if index not in seen:
            seen.add(index)
            ordered.append(items[index])
    return ordered


async def review_candidates(db: AsyncSession, email: str) -> list[ReviewItem]:
    """Unmastered wrong words plus words from postponed days, one entry per word."""
    candidates: dict[str, ReviewItem] = {}
    for entry in await list_wrong_words(db, email):
        candidates[entry.word] = ReviewItem(
            word=entry.word,
            meaning=entry.meaning,
            priority=wrong_word_priority(entry.wrong_count),
            source="wrong",
            wrong_count=entry.wrong_count,
        )

    result = await db.execute(select(Subscriber.postponed_days).where(Subscriber.email == email))
    postponed = result.scalar_one_or_none() or []
    if postponed:
        words = await db.execute(
            select(Word.day, Word.word, Word.meaning).where(Word.day.in_(postponed)).order_by(Word.id)
        )
        for day, word, meaning in words.all():
            candidates.setdefault(
                word,
                ReviewItem(word=word, meaning=meaning, priority=POSTPONED_PRIORITY, source="postponed", day=day),
            )
    return list(candidates.values())


async def build_review_queue(db: AsyncSession, email: str, rng: random.Random | None = None) -> list[ReviewItem]:
    return weighted_shuffle(await review_candidates(db, email), rng)
