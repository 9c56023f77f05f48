"""arq worker that runs the four scheduled dispatches on a cron tick.

Each dispatch self-gates on the subscriber's personal time window, so the
cron only has to fire often enough to land inside every window. The
dispatch marker makes overlapping ticks harmless.
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from wordpanda.config import get_settings
from wordpanda.database import close_db, get_session_factory, init_db
from wordpanda.dispatch.service import (
    DISPATCHES,
    EVENING_REVIEW,
    LUNCH_TEST,
    MORNING_TEST,
    MORNING_WORDS,
    DispatchDeps,
    DispatchError,
)
from wordpanda.middleware.logging import setup_logging

logger = logging.getLogger(__name__)

# Every 5 minutes; with the default 3 minute tolerance each window is 6 minutes wide.
TICK_MINUTES = set(range(0, 60, 5))


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize logging, DB and channel dependencies."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["deps"] = DispatchDeps.from_settings(settings)
    logger.info("Dispatch worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Dispatch worker shut down")


async def _run(ctx: dict, kind: str) -> dict:  # type: ignore[type-arg]
    run = DISPATCHES[kind]
    async with get_session_factory()() as db:
        try:
            summary = await run(db, ctx["deps"])
        except DispatchError as exc:
            logger.error("Dispatch %s failed: %s", kind, exc)
            return {"kind": kind, "error": str(exc)}
    return summary.to_json()


async def morning_words(ctx: dict) -> dict:  # type: ignore[type-arg]
    return await _run(ctx, MORNING_WORDS.name)


async def morning_test(ctx: dict) -> dict:  # type: ignore[type-arg]
    return await _run(ctx, MORNING_TEST.name)


async def lunch_test(ctx: dict) -> dict:  # type: ignore[type-arg]
    return await _run(ctx, LUNCH_TEST.name)


async def evening_review(ctx: dict) -> dict:  # type: ignore[type-arg]
    return await _run(ctx, EVENING_REVIEW.name)


class WorkerSettings:
    """arq worker settings for the dispatch scheduler."""

    functions = [morning_words, morning_test, lunch_test, evening_review]
    cron_jobs = [
        cron(morning_words, minute=TICK_MINUTES),
        cron(morning_test, minute=TICK_MINUTES),
        cron(lunch_test, minute=TICK_MINUTES),
        cron(evening_review, minute=TICK_MINUTES),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 300
