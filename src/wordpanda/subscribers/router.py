"""Notification settings endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.config import get_settings
from wordpanda.database import get_session
from wordpanda.dependencies import normalize_email
from wordpanda.subscribers.schemas import SettingsResponse, SettingsUpdateRequest
from wordpanda.subscribers.service import (
    InvalidSettingsError,
    get_channel_settings_row,
    get_or_create_subscriber,
    update_channel_settings,
)
from wordpanda.subscribers.settings import normalize_active_days, resolve_channel_settings

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


async def _settings_response(db: AsyncSession, email: str) -> SettingsResponse:
    subscriber = await get_or_create_subscriber(db, email)
    await db.commit()
    resolved = resolve_channel_settings(await get_channel_settings_row(db, email))
    return SettingsResponse(
        email=email,
        email_enabled=resolved.email_enabled,
        telegram_enabled=resolved.telegram_enabled,
        telegram_chat_id=resolved.telegram_chat_id,
        google_chat_enabled=resolved.google_chat_enabled,
        google_chat_webhook=resolved.google_chat_webhook,
        morning_time=resolved.morning_time,
        lunch_time=resolved.lunch_time,
        evening_time=resolved.evening_time,
        timezone=resolved.timezone,
        words_per_day=resolved.words_per_day,
        active_days=sorted(normalize_active_days(subscriber.active_days)),
    )


@router.get("", response_model=SettingsResponse)
async def read_settings(
    email: str = Query(...),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SettingsResponse:
    """Settings with defaults applied; a missing row reads as email-only."""
    return await _settings_response(db, normalize_email(email))


@router.put("", response_model=SettingsResponse)
async def replace_settings(
    body: SettingsUpdateRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> SettingsResponse:
    email = normalize_email(body.email)
    updates = body.model_dump(exclude={"email"})
    try:
        await update_channel_settings(db, email, updates, get_settings().google_chat_webhook_prefix)
    except InvalidSettingsError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("settings_updated", email=email)
    return await _settings_response(db, email)
