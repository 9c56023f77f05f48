"""Pydantic response models for dispatch runs."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class SubscriberResult(BaseModel):
    email: str
    day: int
    email_sent: bool = False
    telegram_sent: bool = False
    gchat_sent: bool = False
    # Evening review only
    completed_lunch: bool | None = None
    wrong_count: int | None = None
    day_advanced: bool | None = None
    graduated: bool | None = None
    error: str | None = None


class DispatchSummary(BaseModel):
    dispatch: str
    date: dt.date
    total_subscribers: int = 0
    eligible: int = 0
    sent: int = 0
    skipped_no_words: int = 0
    skipped_already_sent: int = 0
    results: list[SubscriberResult] = Field(default_factory=list)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
