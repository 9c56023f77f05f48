"""Pydantic models for notification settings endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from wordpanda.subscribers.settings import (
    DEFAULT_EVENING_TIME,
    DEFAULT_LUNCH_TIME,
    DEFAULT_MORNING_TIME,
    DEFAULT_TIMEZONE,
    DEFAULT_WORDS_PER_DAY,
)


class SettingsResponse(BaseModel):
    email: str
    email_enabled: bool
    telegram_enabled: bool
    telegram_chat_id: str | None = None
    google_chat_enabled: bool
    google_chat_webhook: str | None = None
    morning_time: str
    lunch_time: str
    evening_time: str
    timezone: str
    words_per_day: int
    active_days: list[int]


class SettingsUpdateRequest(BaseModel):
    """Full replacement of a subscriber's notification settings."""

    email: str = Field(min_length=3, max_length=320)
    email_enabled: bool = True
    telegram_enabled: bool = False
    telegram_chat_id: str | None = Field(default=None, max_length=64)
    google_chat_enabled: bool = False
    google_chat_webhook: str | None = None
    morning_time: str = DEFAULT_MORNING_TIME
    lunch_time: str = DEFAULT_LUNCH_TIME
    evening_time: str = DEFAULT_EVENING_TIME
    timezone: str = DEFAULT_TIMEZONE
    words_per_day: int = Field(default=DEFAULT_WORDS_PER_DAY, ge=1, le=50)
    active_days: list[int] | None = None
