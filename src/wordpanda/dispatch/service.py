"""The four scheduled dispatches: morning words, morning test, lunch test, evening review.

Every run follows the same pipeline:

    load TotalDays + active subscribers (fatal on failure)
      -> eligibility (channel, weekday, personal time window)
      -> dedup against today's dispatch marker
      -> group by current_day, one catalog query for all days
      -> per day: optional generated section, cached for this run only
      -> per subscriber: render, notify, record marker
      -> evening only: completion marker and day advancement

A run is stateless and safe to repeat; the dispatch marker makes a second
invocation inside the same window a no-op for subscribers already served.
"""

from __future__ import annotations

import datetime as dt
import random
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.config import Settings, get_settings
from wordpanda.content.generator import ContentGenerator, create_generator
from wordpanda.content.prompts import business_examples_prompt, evening_review_prompt
from wordpanda.dispatch.advancement import advance_from, decide_advancement
from wordpanda.dispatch.clock import LocalClock, local_clock
from wordpanda.dispatch.dedup import emails_with_marker, record_marker
from wordpanda.dispatch.eligibility import is_eligible
from wordpanda.dispatch.grouping import DayContentCache, WordItem, fetch_words_for_days, group_by_day
from wordpanda.dispatch.schemas import DispatchSummary, SubscriberResult
from wordpanda.learning.action_links import ActionLinkSigner
from wordpanda.learning.wrong_words import WrongWordItem, top_unmastered_by_email
from wordpanda.notifications import templates
from wordpanda.notifications.channels import Message
from wordpanda.notifications.notifier import Notifier
from wordpanda.subscribers.service import get_total_days, load_active_recipients
from wordpanda.subscribers.settings import Recipient

logger = structlog.get_logger()


class DispatchError(Exception):
    """The batch could not run at all (subscriber or catalog load failed)."""


@dataclass(frozen=True)
class DispatchKind:
    name: str
    marker: str
    time_field: str
    delayed: bool = False

    def offset_minutes(self, config: Settings) -> int:
        return config.morning_test_delay_minutes if self.delayed else 0


MORNING_WORDS = DispatchKind("morning-words", "morning_words", "morning_time")
MORNING_TEST = DispatchKind("morning-test", "morning_test", "morning_time", delayed=True)
LUNCH_TEST = DispatchKind("lunch-test", "lunch_test", "lunch_time")
EVENING_REVIEW = DispatchKind("evening-review", "evening_review", "evening_time")

LUNCH_COMPLETION_MARKER = "lunch"
EVENING_COMPLETION_MARKER = "evening"


@dataclass
class DispatchDeps:
    """Collaborators a run needs; built from settings in production, faked in tests."""

    config: Settings
    notifier: Notifier
    generator: ContentGenerator
    links: ActionLinkSigner
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> DispatchDeps:
        config = config or get_settings()
        return cls(
            config=config,
            notifier=Notifier.from_settings(config),
            generator=create_generator(config),
            links=ActionLinkSigner.from_settings(config),
        )


@dataclass
class DispatchPlan:
    kind: DispatchKind
    clock: LocalClock
    total_days: int
    groups: dict[int, list[Recipient]]
    words_by_day: dict[int, list[WordItem]]
    summary: DispatchSummary

    def sendable(self) -> Iterator[tuple[int, list[WordItem], list[Recipient]]]:
        """(day, words, recipients) for every day that has catalog words."""
        for day, recipients in self.groups.items():
            words = self.words_by_day.get(day)
            if words:
                yield day, words, recipients


async def plan_dispatch(
    db: AsyncSession,
    kind: DispatchKind,
    deps: DispatchDeps,
    now: dt.datetime | None = None,
) -> DispatchPlan:
    config = deps.config
    clock = local_clock(config.organization_timezone, now)
    try:
        total_days = await get_total_days(db, config.default_total_days)
        total, recipients = await load_active_recipients(db)
    except SQLAlchemyError as exc:
        msg = f"Failed to load subscribers: {exc}"
        raise DispatchError(msg) from exc

    summary = DispatchSummary(dispatch=kind.name, date=clock.today, total_subscribers=total)
    eligible = [
        r
        for r in recipients
        if is_eligible(
            r,
            clock.weekday,
            clock.minute_of_day,
            kind.time_field,
            offset_minutes=kind.offset_minutes(config),
            tolerance=config.dispatch_tolerance_minutes,
            webhook_prefix=config.google_chat_webhook_prefix,
        )
    ]
    summary.eligible = len(eligible)

    try:
        already_sent = await emails_with_marker(db, [r.email for r in eligible], clock.today, kind.marker)
        groups = group_by_day(r for r in eligible if r.email not in already_sent)
        words_by_day = await fetch_words_for_days(db, groups.keys())
    except SQLAlchemyError as exc:
        msg = f"Failed to load word catalog: {exc}"
        raise DispatchError(msg) from exc

    summary.skipped_already_sent = len(already_sent)
    for day, members in groups.items():
        if not words_by_day.get(day):
            summary.skipped_no_words += len(members)
            logger.warning("dispatch_no_words", dispatch=kind.name, day=day, subscribers=len(members))

    return DispatchPlan(
        kind=kind,
        clock=clock,
        total_days=total_days,
        groups=groups,
        words_by_day=words_by_day,
        summary=summary,
    )


async def _send_and_mark(
    db: AsyncSession,
    plan: DispatchPlan,
    deps: DispatchDeps,
    recipient: Recipient,
    day: int,
    build: Callable[[], Message],
) -> SubscriberResult | None:
    """Render, fan out and stamp the dispatch marker.

    Returns None when the message could not be rendered, in which case
    nothing was sent and no marker is written.
    """
    result = SubscriberResult(email=recipient.email, day=day)
    try:
        message = build()
    except Exception as exc:
        logger.exception("dispatch_render_failed", dispatch=plan.kind.name, email=recipient.email)
        result.error = f"render: {exc}"
        plan.summary.results.append(result)
        return None

    report = await deps.notifier.notify(recipient, message)
    result.email_sent = report.email_sent
    result.telegram_sent = report.telegram_sent
    result.gchat_sent = report.gchat_sent
    if report.any_sent:
        plan.summary.sent += 1

    # Marker goes in after any attempt, even a fully failed one.
    try:
        await record_marker(db, recipient.email, plan.clock.today, plan.kind.marker, day=day)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.warning("dispatch_marker_failed", dispatch=plan.kind.name, email=recipient.email, error=str(exc))
        result.error = f"marker: {exc}"

    plan.summary.results.append(result)
    return result


def _log_summary(summary: DispatchSummary) -> None:
    logger.info(
        "dispatch_complete",
        dispatch=summary.dispatch,
        date=summary.date.isoformat(),
        total=summary.total_subscribers,
        eligible=summary.eligible,
        sent=summary.sent,
        skipped_no_words=summary.skipped_no_words,
        skipped_already_sent=summary.skipped_already_sent,
    )


async def run_morning_words(db: AsyncSession, deps: DispatchDeps, now: dt.datetime | None = None) -> DispatchSummary:
    """Today's words with generated business example sentences."""
    plan = await plan_dispatch(db, MORNING_WORDS, deps, now)
    cache = DayContentCache(timeout=deps.config.http_timeout_seconds)
    for day, words, recipients in plan.sendable():
        examples = await cache.get_or_create(day, lambda: deps.generator.generate(business_examples_prompt(words)))
        for r in recipients:
            await _send_and_mark(
                db, plan, deps, r, day,
                lambda: templates.morning_words(r.name, day, plan.total_days, words, examples, deps.links),
            )
    _log_summary(plan.summary)
    return plan.summary


async def run_morning_test(db: AsyncSession, deps: DispatchDeps, now: dt.datetime | None = None) -> DispatchSummary:
    """Meaning-to-word recall quiz, one shuffle per day shared by its subscribers."""
    plan = await plan_dispatch(db, MORNING_TEST, deps, now)
    for day, words, recipients in plan.sendable():
        shuffled = deps.rng.sample(words, len(words))
        for r in recipients:
            await _send_and_mark(
                db, plan, deps, r, day,
                lambda: templates.morning_test(r.name, day, shuffled, deps.links),
            )
    _log_summary(plan.summary)
    return plan.summary


async def run_lunch_test(db: AsyncSession, deps: DispatchDeps, now: dt.datetime | None = None) -> DispatchSummary:
    """Shuffled words with signed complete and relearn links."""
    plan = await plan_dispatch(db, LUNCH_TEST, deps, now)
    for day, words, recipients in plan.sendable():
        shuffled = deps.rng.sample(words, len(words))
        for r in recipients:
            await _send_and_mark(
                db, plan, deps, r, day,
                lambda: templates.lunch_test(r.name, r.email, day, shuffled, deps.links),
            )
    _log_summary(plan.summary)
    return plan.summary


async def run_evening_review(db: AsyncSession, deps: DispatchDeps, now: dt.datetime | None = None) -> DispatchSummary:
    """Review digest, then advance subscribers who completed today's lunch checkpoint."""
    plan = await plan_dispatch(db, EVENING_REVIEW, deps, now)
    today = plan.clock.today
    pending = [r.email for _, _, recipients in plan.sendable() for r in recipients]

    completed: set[str] = set()
    wrong_by_email: dict[str, list[WrongWordItem]] = {}
    try:
        completed = await emails_with_marker(db, pending, today, LUNCH_COMPLETION_MARKER)
        wrong_by_email = await top_unmastered_by_email(db, pending)
    except SQLAlchemyError as exc:
        # Without completion data nobody advances; the digest still goes out.
        await db.rollback()
        logger.warning("evening_history_load_failed", error=str(exc))

    cache = DayContentCache(timeout=deps.config.http_timeout_seconds)
    for day, words, recipients in plan.sendable():
        review = await cache.get_or_create(day, lambda: deps.generator.generate(evening_review_prompt(words)))
        for r in recipients:
            completed_lunch = r.email in completed
            wrong_words = wrong_by_email.get(r.email, [])
            decision = decide_advancement(day, plan.total_days, completed_lunch)

            result = await _send_and_mark(
                db, plan, deps, r, day,
                lambda: templates.evening_review(
                    name=r.name,
                    email=r.email,
                    day=day,
                    total_days=plan.total_days,
                    completed_lunch=completed_lunch,
                    wrong_words=wrong_words,
                    words=words,
                    review_text=review,
                    graduated=decision.graduated,
                    links=deps.links,
                ),
            )
            if result is None:
                continue
            result.completed_lunch = completed_lunch
            result.wrong_count = len(wrong_words)
            result.graduated = decision.graduated
            result.day_advanced = False

            try:
                await record_marker(db, r.email, today, EVENING_COMPLETION_MARKER, day=day)
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.warning("evening_marker_failed", email=r.email, error=str(exc))

            if decision.advance and result.error is None:
                try:
                    result.day_advanced = await advance_from(db, r.email, day, now)
                except SQLAlchemyError as exc:
                    await db.rollback()
                    logger.error("day_advance_failed", email=r.email, day=day, error=str(exc))
                    result.error = f"advance: {exc}"
                else:
                    if result.day_advanced:
                        logger.info("day_advanced", email=r.email, from_day=day, to_day=decision.next_day)
            elif decision.graduated:
                logger.info("subscriber_graduated", email=r.email, day=day)

    _log_summary(plan.summary)
    return plan.summary


DISPATCHES = {
    MORNING_WORDS.name: run_morning_words,
    MORNING_TEST.name: run_morning_test,
    LUNCH_TEST.name: run_lunch_test,
    EVENING_REVIEW.name: run_evening_review,
}
