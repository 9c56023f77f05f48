"""Subscriber loading and notification settings management."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.db.models import ConfigEntry, Subscriber, SubscriberSettings
from wordpanda.db.upsert import upsert
from wordpanda.dispatch.clock import parse_hhmm
from wordpanda.subscribers.settings import (
    DEFAULT_NAME,
    GOOGLE_CHAT_WEBHOOK_PREFIX,
    Recipient,
    is_valid_google_chat_webhook,
    resolve_recipient,
)


class SubscriberNotFoundError(LookupError):
    """No subscriber row exists for the given email."""


class InvalidSettingsError(ValueError):
    """A settings write failed validation."""


async def get_total_days(db: AsyncSession, default: int) -> int:
    """Read the TotalDays ceiling from the config store."""
    result = await db.execute(select(ConfigEntry.value).where(ConfigEntry.key == "TotalDays"))
    raw = result.scalar_one_or_none()
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


async def load_active_recipients(db: AsyncSession) -> tuple[int, list[Recipient]]:
    """Load every active subscriber with settings resolved.

    Two queries regardless of subscriber count. Returns (total_active, recipients).
    """
    subs_result = await db.execute(
        select(Subscriber).where(Subscriber.status == "active").order_by(Subscriber.id)
    )
    subscribers = list(subs_result.scalars().all())
    if not subscribers:
        return 0, []

    settings_result = await db.execute(
        select(SubscriberSettings).where(
            SubscriberSettings.email.in_([s.email for s in subscribers])
        )
    )
    settings_by_email = {row.email: row for row in settings_result.scalars().all()}
    recipients = [resolve_recipient(s, settings_by_email.get(s.email)) for s in subscribers]
    return len(subscribers), recipients


async def get_subscriber(db: AsyncSession, email: str) -> Subscriber:
    result = await db.execute(select(Subscriber).where(Subscriber.email == email))
    subscriber = result.scalar_one_or_none()
    if subscriber is None:
        msg = f"Subscriber not found: {email}"
        raise SubscriberNotFoundError(msg)
    return subscriber


async def get_or_create_subscriber(db: AsyncSession, email: str, name: str | None = None) -> Subscriber:
    """Fetch a subscriber, creating an active day-1 row on first contact."""
    result = await db.execute(select(Subscriber).where(Subscriber.email == email))
    subscriber = result.scalar_one_or_none()
    if subscriber is not None:
        return subscriber
    subscriber = Subscriber(
        email=email,
        name=name or DEFAULT_NAME,
        status="active",
        current_day=1,
        postponed_days=[],
        started_at=datetime.now(timezone.utc),
    )
    db.add(subscriber)
    await db.flush()
    return subscriber


async def get_channel_settings_row(db: AsyncSession, email: str) -> SubscriberSettings | None:
    result = await db.execute(select(SubscriberSettings).where(SubscriberSettings.email == email))
    return result.scalar_one_or_none()


def validate_settings_update(
    updates: dict[str, Any],
    webhook_prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX,
) -> None:
    """Reject malformed values before they reach the store.

    Raises:
        InvalidSettingsError: On a bad time, webhook or weekday value.
    """
    for time_field in ("morning_time", "lunch_time", "evening_time"):
        value = updates.get(time_field)
        if value is None:
            continue
        try:
            parse_hhmm(value)
        except ValueError as exc:
            raise InvalidSettingsError(str(exc)) from exc

    webhook = updates.get("google_chat_webhook")
    if webhook and not is_valid_google_chat_webhook(webhook, webhook_prefix):
        msg = f"Google Chat webhook must start with {webhook_prefix}"
        raise InvalidSettingsError(msg)
    if updates.get("google_chat_enabled") and not webhook:
        msg = "Google Chat requires a webhook URL"
        raise InvalidSettingsError(msg)
    if updates.get("telegram_enabled") and not updates.get("telegram_chat_id"):
        msg = "Telegram requires a chat id"
        raise InvalidSettingsError(msg)

    active_days = updates.get("active_days")
    if active_days is not None and any(not 0 <= int(d) <= 6 for d in active_days):
        msg = "active_days must contain weekdays 0 (Sunday) to 6 (Saturday)"
        raise InvalidSettingsError(msg)


async def update_channel_settings(
    db: AsyncSession,
    email: str,
    updates: dict[str, Any],
    webhook_prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX,
) -> SubscriberSettings:
    """Validate and upsert notification settings; ``active_days`` goes to the subscriber row."""
    validate_settings_update(updates, webhook_prefix)
    subscriber = await get_or_create_subscriber(db, email)

    active_days = updates.pop("active_days", None)
    if active_days is not None:
        subscriber.active_days = sorted({int(d) for d in active_days})

    row = {"email": email, **updates, "updated_at": datetime.now(timezone.utc)}
    await upsert(db, SubscriberSettings, row, conflict_columns=["email"])
    await db.commit()

    result = await db.execute(
        select(SubscriberSettings)
        .where(SubscriberSettings.email == email)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()
