"""Pydantic request/response models for learning endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field


# --- Quiz ---


class QuizAnswerIn(BaseModel):
    word: str = Field(min_length=1, max_length=128)
    meaning: str = ""
    memorized: bool


class QuizSubmitRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    day: int = Field(ge=1)
    quiz_type: Literal["morning", "lunch", "evening"] = "lunch"
    results: list[QuizAnswerIn]


class QuizSubmitResponse(BaseModel):
    score: int
    total: int


class QuizHistoryEntry(BaseModel):
    day: int
    quiz_type: str
    score: int
    total: int
    answers: list[dict]
    created_at: datetime


class QuizHistoryResponse(BaseModel):
    results: list[QuizHistoryEntry]


# --- Progress ---


class ProgressResponse(BaseModel):
    email: str
    current_day: int
    total_days: int
    status: str
    active_days: list[int]
    started_at: datetime | None = None
    last_lesson_at: datetime | None = None


class ProgressUpdateRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    action: Literal["advance", "set"]
    day: int | None = Field(default=None, ge=1)


# --- Postpone ---


class PostponeRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    day: int | None = Field(default=None, ge=1)


class PostponeResponse(BaseModel):
    postponed_day: int | None = None
    postponed_days: list[int]
    message: str = ""


# --- Review ---


class ReviewItemResponse(BaseModel):
    word: str
    meaning: str
    priority: int
    source: str
    wrong_count: int = 0
    day: int | None = None


class ReviewQueueResponse(BaseModel):
    items: list[ReviewItemResponse]


class WrongWordResponse(BaseModel):
    word: str
    meaning: str
    wrong_count: int
    last_wrong: datetime | None = None
    next_review: date | None = None
    mastered: bool


class WrongWordListResponse(BaseModel):
    words: list[WrongWordResponse]


# --- Stats ---


class RecentWrongWord(BaseModel):
    word: str
    meaning: str
    wrong_count: int


class StatsResponse(BaseModel):
    current_day: int
    total_days: int
    streak: int
    schedule: dict[str, bool]
    total_wrong: int
    mastered_count: int
    total_study_days: int
    avg_mastered_per_day: float
    recent_wrong: list[RecentWrongWord]
