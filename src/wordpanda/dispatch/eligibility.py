"""Decide whether a subscriber should receive a given scheduled dispatch now."""

from __future__ import annotations

from wordpanda.dispatch.clock import parse_hhmm, within_window
from wordpanda.subscribers.settings import (
    GOOGLE_CHAT_WEBHOOK_PREFIX,
    ChannelSettings,
    Recipient,
    any_channel_configured,
)

DEFAULT_TOLERANCE_MINUTES = 3


def target_minutes(settings: ChannelSettings, time_field: str, offset_minutes: int = 0) -> int:
    """Personal send time for ``time_field`` plus an offset, in minutes since midnight."""
    return parse_hhmm(getattr(settings, time_field)) + offset_minutes


def is_eligible(
    recipient: Recipient,
    today_weekday: int,
    now_minutes: int,
    time_field: str | None = None,
    *,
    offset_minutes: int = 0,
    tolerance: int = DEFAULT_TOLERANCE_MINUTES,
    webhook_prefix: str = GOOGLE_CHAT_WEBHOOK_PREFIX,
) -> bool:
    """All three gates must pass: a usable channel, an active weekday and the time window.

    ``today_weekday`` is 0=Sunday..6=Saturday in the organization timezone.
    ``time_field`` of None disables the time gate.
    """
    settings = recipient.settings
    if not any_channel_configured(settings, webhook_prefix):
        return False
    if today_weekday not in recipient.active_days:
        return False
    if time_field is None:
        return True
    return within_window(now_minutes, target_minutes(settings, time_field, offset_minutes), tolerance)
