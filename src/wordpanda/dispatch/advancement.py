"""Day advancement at evening review.

A subscriber moves from day N to N+1 only when today's lunch completion
marker exists and N+1 does not pass the course length. At the last day
with lunch completed the subscriber has graduated and stays put.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import Subscriber


@dataclass(frozen=True)
class AdvancementDecision:
    advance: bool
    graduated: bool
    next_day: int


def decide_advancement(current_day: int, total_days: int, completed_lunch: bool) -> AdvancementDecision:
    next_day = current_day + 1
    if not completed_lunch:
        return AdvancementDecision(advance=False, graduated=False, next_day=current_day)
    if next_day <= total_days:
        return AdvancementDecision(advance=True, graduated=False, next_day=next_day)
    return AdvancementDecision(advance=False, graduated=current_day >= total_days, next_day=current_day)


async def advance_from(
    db: AsyncSession,
    email: str,
    expected_day: int,
    now: dt.datetime | None = None,
) -> bool:
    """Compare-and-set ``current_day`` from ``expected_day`` to ``expected_day + 1``.

    Returns False when the row was already moved by someone else, so the
    day never jumps twice for one completion.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    result = await db.execute(
        update(Subscriber)
        .where(Subscriber.email == email, Subscriber.current_day == expected_day)
        .values(current_day=expected_day + 1, last_lesson_at=now)
    )
    await db.commit()
    return result.rowcount == 1
