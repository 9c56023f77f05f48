"""Resolve subscriber rows and their optional settings into fully populated values.

Defaults live here and only here: callers never fall back inline.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from wordpanda.db.models import Subscriber, SubscriberSettings
from wordpanda.dispatch.clock import parse_hhmm

DEFAULT_ACTIVE_DAYS = frozenset({1, 2, 3, 4, 5})  # Mon-Fri, 0=Sunday
DEFAULT_MORNING_TIME = "07:30"
DEFAULT_LUNCH_TIME = "13:00"
DEFAULT_EVENING_TIME = "16:00"
DEFAULT_TIMEZONE = "Asia/Seoul"
DEFAULT_WORDS_PER_DAY = 10
DEFAULT_NAME = "학습자"
GOOGLE_CHAT_WEBHOOK_PREFIX = "https://chat.googleapis.com/"

TIME_FIELDS = ("morning_time", "lunch_time", "evening_time")


@dataclass(frozen=True)
class ChannelSettings:
    """Notification channels and personal send times, defaults applied."""

    email_enabled: bool = True
    telegram_enabled: bool = False
    telegram_chat_id: str | None = None
    google_chat_enabled: bool = False
    google_chat_webhook: str | None = None
    morning_time: str = DEFAULT_MORNING_TIME
    lunch_time: str = DEFAULT_LUNCH_TIME
    evening_time: str = DEFAULT_EVENING_TIME
    timezone: str = DEFAULT_TIMEZONE
    words_per_day: int = DEFAULT_WORDS_PER_DAY


@dataclass(frozen=True)
class Recipient:
    """An active subscriber as seen by the dispatch path."""

    email: str
    name: str = DEFAULT_NAME
    current_day: int = 1
    active_days: frozenset[int] = DEFAULT_ACTIVE_DAYS
    postponed_days: tuple[int, ...] = ()
    settings: ChannelSettings = field(default_factory=ChannelSettings)


def is_valid_google_chat_webhook(url: str | None, prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX) -> bool:
    return bool(url) and url.startswith(prefix)


def email_configured(settings: ChannelSettings) -> bool:
    return settings.email_enabled


def telegram_configured(settings: ChannelSettings) -> bool:
    return settings.telegram_enabled and bool(settings.telegram_chat_id)


def google_chat_configured(settings: ChannelSettings, prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX) -> bool:
    return settings.google_chat_enabled and is_valid_google_chat_webhook(settings.google_chat_webhook, prefix)


def any_channel_configured(settings: ChannelSettings, prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX) -> bool:
    """A channel counts only when its flag is on and its address is present."""
    return (
        email_configured(settings)
        or telegram_configured(settings)
        or google_chat_configured(settings, prefix)
    )


def _time_or_default(value: str | None, default: str) -> str:
    if not value:
        return default
    try:
        parse_hhmm(value)
    except ValueError:
        return default
    return value


def resolve_channel_settings(row: SubscriberSettings | None) -> ChannelSettings:
    """Apply defaults to an optional settings row."""
    if row is None:
        return ChannelSettings()
    return ChannelSettings(
        # NULL email flag means "never opted out".
        email_enabled=row.email_enabled is not False,
        telegram_enabled=row.telegram_enabled is True,
        telegram_chat_id=row.telegram_chat_id or None,
        google_chat_enabled=row.google_chat_enabled is True,
        google_chat_webhook=row.google_chat_webhook or None,
        morning_time=_time_or_default(row.morning_time, DEFAULT_MORNING_TIME),
        lunch_time=_time_or_default(row.lunch_time, DEFAULT_LUNCH_TIME),
        evening_time=_time_or_default(row.evening_time, DEFAULT_EVENING_TIME),
        timezone=row.timezone or DEFAULT_TIMEZONE,
        words_per_day=row.words_per_day or DEFAULT_WORDS_PER_DAY,
    )


def normalize_active_days(days: Iterable[int] | None) -> frozenset[int]:
    if days is None:
        return DEFAULT_ACTIVE_DAYS
    return frozenset(int(d) for d in days if 0 <= int(d) <= 6)


def resolve_recipient(subscriber: Subscriber, row: SubscriberSettings | None) -> Recipient:
    """Build the dispatch view of a subscriber, once, at load time."""
    return Recipient(
        email=subscriber.email,
        name=subscriber.name or DEFAULT_NAME,
        current_day=subscriber.current_day or 1,
        active_days=normalize_active_days(subscriber.active_days),
        postponed_days=tuple(subscriber.postponed_days or ()),
        settings=resolve_channel_settings(row),
    )
