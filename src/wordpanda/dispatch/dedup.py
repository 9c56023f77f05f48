"""Per-day dispatch markers in the attendance ledger.

A dispatch marker row ``(email, date, <marker>)`` means the dispatch was
already attempted for that subscriber on that organization-local date.
Two overlapping runs may both pass the check before either writes; the
upsert keeps the ledger consistent and at most one duplicate is sent.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import Attendance
from wordpanda.db.upsert import upsert


async def emails_with_marker(
    db: AsyncSession,
    emails: Iterable[str],
    date: dt.date,
    marker: str,
) -> set[str]:
    """Which of ``emails`` already carry ``marker`` on ``date``. One query."""
    email_list = list(emails)
    if not email_list:
        return set()
    result = await db.execute(
        select(Attendance.email).where(
            Attendance.email.in_(email_list),
            Attendance.date == date,
            Attendance.type == marker,
        )
    )
    return set(result.scalars().all())


async def record_marker(
    db: AsyncSession,
    email: str,
    date: dt.date,
    marker: str,
    day: int | None = None,
    completed: bool = True,
) -> None:
    """Upsert one attendance row on its natural key and commit."""
    await upsert(
        db,
        Attendance,
        {"email": email, "date": date, "type": marker, "completed": completed, "day": day},
        conflict_columns=["email", "date", "type"],
    )
    await db.commit()
