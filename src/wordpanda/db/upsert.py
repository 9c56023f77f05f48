"""Dialect-aware INSERT ... ON CONFLICT DO UPDATE.

Upsert-by-natural-key is the only write discipline shared between the
dispatch functions and the API layer, so every conflicting write goes
through here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def _insert_for(db: AsyncSession) -> Any:
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    msg = f"Upsert not supported for dialect: {dialect}"
    raise ValueError(msg)


async def upsert(
    db: AsyncSession,
    model: type,
    rows: dict[str, Any] | Sequence[dict[str, Any]],
    conflict_columns: Sequence[str],
    update_columns: Sequence[str] | None = None,
) -> None:
    """Insert ``rows``; on conflict of ``conflict_columns`` overwrite the rest.

    ``rows`` may be a single mapping or a list (sent as one multi-row
    statement). Does not commit.
    """
    values = [rows] if isinstance(rows, dict) else list(rows)
    if not values:
        return

    insert = _insert_for(db)
    stmt = insert(model).values(values)
    if update_columns is None:
        update_columns = [c for c in values[0] if c not in conflict_columns]
    if update_columns:
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict_columns),
            set_={col: getattr(stmt.excluded, col) for col in update_columns},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    await db.execute(stmt)
