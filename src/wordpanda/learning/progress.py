"""Manual progress control, postponement and completion marks."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import Subscriber
from wordpanda.dispatch.clock import local_clock
from wordpanda.dispatch.dedup import emails_with_marker, record_marker
from wordpanda.subscribers.service import get_or_create_subscriber, get_subscriber

logger = logging.getLogger(__name__)

POSTPONED_MARKER = "postponed"
COMPLETION_MARKER = "lunch"


class InvalidProgressError(ValueError):
    """A requested day is outside 1..total_days."""


@dataclass(frozen=True)
class CompletionResult:
    day: int
    already_completed: bool


async def get_progress(db: AsyncSession, email: str) -> Subscriber:
    """Fetch progress, creating a default day-1 subscriber on first contact."""
    subscriber = await get_or_create_subscriber(db, email)
    await db.commit()
    return subscriber


async def advance(db: AsyncSession, email: str, total_days: int, now: dt.datetime | None = None) -> Subscriber:
    """Move forward one day, capped at ``total_days``."""
    subscriber = await get_subscriber(db, email)
    if subscriber.current_day < total_days:
        subscriber.current_day += 1
    subscriber.last_lesson_at = now or dt.datetime.now(dt.timezone.utc)
    await db.commit()
    logger.info("Advanced %s to day %d", email, subscriber.current_day)
    return subscriber


async def set_day(db: AsyncSession, email: str, day: int, total_days: int) -> Subscriber:
    """Admin override; the only path that may move ``current_day`` backwards."""
    if not 1 <= day <= total_days:
        msg = f"day must be between 1 and {total_days}"
        raise InvalidProgressError(msg)
    subscriber = await get_subscriber(db, email)
    subscriber.current_day = day
    await db.commit()
    logger.info("Set %s to day %d", email, day)
    return subscriber


async def postpone(
    db: AsyncSession,
    email: str,
    tz_name: str,
    day: int | None = None,
    now: dt.datetime | None = None,
) -> int:
    """Queue ``day`` (default: current day) for later review. ``current_day`` is untouched."""
    now = now or dt.datetime.now(dt.timezone.utc)
    subscriber = await get_subscriber(db, email)
    target = day or subscriber.current_day
    postponed = list(subscriber.postponed_days or [])
    if target not in postponed:
        postponed.append(target)
    subscriber.postponed_days = postponed
    subscriber.last_postponed_at = now
    await db.flush()
    await record_marker(db, email, local_clock(tz_name, now).today, POSTPONED_MARKER, day=target, completed=False)
    return target


async def clear_postponed(db: AsyncSession, email: str, day: int) -> list[int]:
    subscriber = await get_subscriber(db, email)
    subscriber.postponed_days = [d for d in (subscriber.postponed_days or []) if d != day]
    await db.commit()
    return subscriber.postponed_days


async def list_postponed(db: AsyncSession, email: str) -> list[int]:
    try:
        subscriber = await get_subscriber(db, email)
    except LookupError:
        return []
    return list(subscriber.postponed_days or [])


async def record_completion(
    db: AsyncSession,
    email: str,
    day: int,
    tz_name: str,
    now: dt.datetime | None = None,
) -> CompletionResult:
    """Stamp today's midday completion, the checkpoint evening review advances on."""
    today = local_clock(tz_name, now).today
    already = email in await emails_with_marker(db, [email], today, COMPLETION_MARKER)
    if not already:
        await record_marker(db, email, today, COMPLETION_MARKER, day=day)
    return CompletionResult(day=day, already_completed=already)
