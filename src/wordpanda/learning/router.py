"""Learning API: quiz, progress, postpone, review, stats and one-click actions."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.config import get_settings
from wordpanda.database import get_session, get_session_factory
from wordpanda.dependencies import normalize_email
from wordpanda.dispatch.clock import local_clock
from wordpanda.learning.action_links import ActionLinkSigner, InvalidActionLinkError, relearn_extra
from wordpanda.learning.progress import (
    InvalidProgressError,
    advance,
    clear_postponed,
    get_progress,
    list_postponed,
    postpone,
    record_completion,
    set_day,
)
from wordpanda.learning.quiz_service import (
    QuizAnswer,
    QuizPersistenceError,
    QuizSubmissionError,
    get_quiz_history,
    submit_quiz,
)
from wordpanda.learning.review import build_review_queue
from wordpanda.learning.schemas import (
    PostponeRequest,
    PostponeResponse,
    ProgressResponse,
    ProgressUpdateRequest,
    QuizHistoryEntry,
    QuizHistoryResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
    RecentWrongWord,
    ReviewItemResponse,
    ReviewQueueResponse,
    StatsResponse,
    WrongWordListResponse,
    WrongWordResponse,
)
from wordpanda.learning.stats import get_stats
from wordpanda.learning.wrong_words import list_wrong_words, relearn
from wordpanda.subscribers.service import get_total_days
from wordpanda.subscribers.settings import normalize_active_days

router = APIRouter(prefix="/api/v1", tags=["Learning"])


async def _total_days(db: AsyncSession) -> int:
    return await get_total_days(db, get_settings().default_total_days)


def _progress_response(subscriber, total_days: int) -> ProgressResponse:
    return ProgressResponse(
        email=subscriber.email,
        current_day=subscriber.current_day or 1,
        total_days=total_days,
        status=subscriber.status,
        active_days=sorted(normalize_active_days(subscriber.active_days)),
        started_at=subscriber.started_at,
        last_lesson_at=subscriber.last_lesson_at,
    )


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------


@router.post("/quiz", response_model=QuizSubmitResponse)
async def submit_quiz_route(body: QuizSubmitRequest) -> QuizSubmitResponse:
    """Submit per-word memorized / not-memorized answers."""
    answers = [QuizAnswer(word=a.word, meaning=a.meaning, memorized=a.memorized) for a in body.results]
    try:
        outcome = await submit_quiz(
            get_session_factory(),
            email=normalize_email(body.email),
            day=body.day,
            quiz_type=body.quiz_type,
            answers=answers,
            tz_name=get_settings().organization_timezone,
        )
    except QuizSubmissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except QuizPersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return QuizSubmitResponse(score=outcome.score, total=outcome.total)


@router.get("/quiz", response_model=QuizHistoryResponse)
async def quiz_history(
    email: str = Query(...),
    day: int | None = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> QuizHistoryResponse:
    rows = await get_quiz_history(db, normalize_email(email), day)
    return QuizHistoryResponse(
        results=[
            QuizHistoryEntry(
                day=r.day,
                quiz_type=r.quiz_type,
                score=r.score,
                total=r.total,
                answers=r.answers,
                created_at=r.created_at,
            )
            for r in rows
        ]
    )


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@router.get("/progress", response_model=ProgressResponse)
async def read_progress(
    email: str = Query(...),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ProgressResponse:
    """Current day for a subscriber; unknown emails start at day 1."""
    subscriber = await get_progress(db, normalize_email(email))
    return _progress_response(subscriber, await _total_days(db))


@router.post("/progress", response_model=ProgressResponse)
async def update_progress(
    body: ProgressUpdateRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ProgressResponse:
    """Manual ``advance`` (+1, capped) or admin ``set``."""
    email = normalize_email(body.email)
    total_days = await _total_days(db)
    try:
        if body.action == "advance":
            subscriber = await advance(db, email, total_days)
        else:
            if body.day is None:
                raise HTTPException(status_code=400, detail="day is required for set")
            subscriber = await set_day(db, email, body.day, total_days)
    except InvalidProgressError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _progress_response(subscriber, total_days)


# ---------------------------------------------------------------------------
# Postpone
# ---------------------------------------------------------------------------


@router.get("/postpone", response_model=PostponeResponse)
async def read_postponed(
    email: str = Query(...),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> PostponeResponse:
    return PostponeResponse(postponed_days=await list_postponed(db, normalize_email(email)))


@router.post("/postpone", response_model=PostponeResponse)
async def postpone_day(
    body: PostponeRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> PostponeResponse:
    """Push a day's words into the review pool without changing progress."""
    email = normalize_email(body.email)
    day = await postpone(db, email, get_settings().organization_timezone, body.day)
    return PostponeResponse(
        postponed_day=day,
        postponed_days=await list_postponed(db, email),
        message=f"Day {day} 단어가 내일로 미뤄졌습니다.",
    )


@router.delete("/postpone", response_model=PostponeResponse)
async def clear_postponed_day(
    email: str = Query(...),
    day: int = Query(..., ge=1),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> PostponeResponse:
    remaining = await clear_postponed(db, normalize_email(email), day)
    return PostponeResponse(postponed_days=remaining, message=f"Day {day} 학습 완료!")


# ---------------------------------------------------------------------------
# Review & wrong words
# ---------------------------------------------------------------------------


@router.get("/review", response_model=ReviewQueueResponse)
async def review_queue(
    email: str = Query(...),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ReviewQueueResponse:
    items = await build_review_queue(db, normalize_email(email))
    return ReviewQueueResponse(
        items=[
            ReviewItemResponse(
                word=i.word,
                meaning=i.meaning,
                priority=i.priority,
                source=i.source,
                wrong_count=i.wrong_count,
                day=i.day,
            )
            for i in items
        ]
    )


@router.get("/wrong-words", response_model=WrongWordListResponse)
async def wrong_words(
    email: str = Query(...),
    include_mastered: bool = Query(default=False),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> WrongWordListResponse:
    entries = await list_wrong_words(db, normalize_email(email), include_mastered)
    return WrongWordListResponse(
        words=[
            WrongWordResponse(
                word=e.word,
                meaning=e.meaning,
                wrong_count=e.wrong_count,
                last_wrong=e.last_wrong,
                next_review=e.next_review,
                mastered=e.mastered,
            )
            for e in entries
        ]
    )


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@router.get("/stats", response_model=StatsResponse)
async def stats(
    email: str = Query(...),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> StatsResponse:
    settings = get_settings()
    today = local_clock(settings.organization_timezone).today
    result = await get_stats(db, normalize_email(email), today, await _total_days(db))
    return StatsResponse(
        current_day=result.current_day,
        total_days=result.total_days,
        streak=result.streak,
        schedule=result.schedule,
        total_wrong=result.total_wrong,
        mastered_count=result.mastered_count,
        total_study_days=result.total_study_days,
        avg_mastered_per_day=result.avg_mastered_per_day,
        recent_wrong=[
            RecentWrongWord(word=w.word, meaning=w.meaning, wrong_count=w.wrong_count) for w in result.recent_wrong
        ],
    )


# ---------------------------------------------------------------------------
# One-click actions from notifications
# ---------------------------------------------------------------------------


def _action_page(message: str, success: bool, status_code: int = 200) -> HTMLResponse:
    color = "#10b981" if success else "#f87171"
    html = f"""<!DOCTYPE html><html><head><meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1.0"><title>옛설판다</title></head>
<body style="margin:0;background:#09090b;display:flex;align-items:center;justify-content:center;min-height:100vh;font-family:system-ui,sans-serif;">
<div style="text-align:center;padding:24px;">
<p style="color:{color};font-size:16px;font-weight:700;margin:0 0 8px;">🐼 {message}</p>
<p style="color:#71717a;font-size:12px;margin:0;">잠시 후 자동으로 닫힙니다</p>
</div>
<script>setTimeout(function(){{window.close();}},1500);</script>
</body></html>"""
    return HTMLResponse(content=html, status_code=status_code)


@router.get("/actions/complete", response_class=HTMLResponse)
async def complete_action(
    email: str = Query(...),
    day: int = Query(..., ge=1),
    token: str | None = Query(default=None),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> HTMLResponse:
    """Signed "학습 완료" link: stamps today's lunch completion."""
    settings = get_settings()
    email = normalize_email(email)
    try:
        ActionLinkSigner.from_settings(settings).verify(token, "complete", email, day)
    except InvalidActionLinkError:
        return _action_page("링크가 만료되었거나 올바르지 않습니다.", False, status_code=403)

    result = await record_completion(db, email, day, settings.organization_timezone)
    if result.already_completed:
        return _action_page("이미 학습 완료 처리되었습니다!", True)
    return _action_page(f"Day {day} 학습 완료! 수고하셨습니다 🎉", True)


@router.get("/actions/relearn", response_class=HTMLResponse)
async def relearn_action(
    email: str = Query(...),
    day: int = Query(..., ge=1),
    word: str = Query(..., min_length=1),
    meaning: str = Query(default=""),
    token: str | None = Query(default=None),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> HTMLResponse:
    """Signed "재학습" link: counts one more miss for the word."""
    settings = get_settings()
    email = normalize_email(email)
    try:
        ActionLinkSigner.from_settings(settings).verify(
            token, "relearn", email, day, extra=relearn_extra(word, meaning)
        )
    except InvalidActionLinkError:
        return _action_page("링크가 만료되었거나 올바르지 않습니다.", False, status_code=403)

    await relearn(db, email, word, meaning, settings.organization_timezone)
    return _action_page(f"'{escape(word)}' 재학습 목록에 추가했습니다.", True)
