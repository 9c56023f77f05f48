"""Group recipients by study day and fetch their catalog slices in one query."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import Word
from wordpanda.subscribers.settings import Recipient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WordItem:
    word: str
    meaning: str


def group_by_day(recipients: Iterable[Recipient]) -> dict[int, list[Recipient]]:
    """Partition recipients by ``current_day``, preserving input order within a day."""
    groups: dict[int, list[Recipient]] = {}
    for recipient in recipients:
        groups.setdefault(recipient.current_day or 1, []).append(recipient)
    return groups


async def fetch_words_for_days(db: AsyncSession, days: Iterable[int]) -> dict[int, list[WordItem]]:
    """One ``WHERE day IN (...)`` query; each day's words in insertion order."""
    day_list = sorted(set(days))
    if not day_list:
        return {}
    result = await db.execute(
        select(Word.day, Word.word, Word.meaning)
        .where(Word.day.in_(day_list))
        .order_by(Word.id)
    )
    words_by_day: dict[int, list[WordItem]] = {}
    for day, word, meaning in result.all():
        words_by_day.setdefault(day, []).append(WordItem(word=word, meaning=meaning))
    return words_by_day


class DayContentCache:
    """Per-invocation memo of generated text, keyed by study day.

    A failed or timed-out generation is stored as an empty string so the
    same day is never retried within one dispatch run.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._entries: dict[int, str] = {}

    async def get_or_create(self, day: int, build: Callable[[], Awaitable[str]]) -> str:
        if day in self._entries:
            return self._entries[day]
        try:
            text = await asyncio.wait_for(build(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Content generation for day %d timed out after %.1fs", day, self.timeout)
            text = ""
        except Exception:
            logger.warning("Content generation failed for day %d", day, exc_info=True)
            text = ""
        self._entries[day] = text or ""
        return self._entries[day]
