"""Progress control, postponement, completion marks and the review queue."""

import datetime as dt
import random

import pytest
from sqlalchemy import select

from conftest import add_subscriber, add_words
from wordpanda.db.models import Attendance, WrongWord
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
from wordpanda.learning.review import build_review_queue, review_candidates
from wordpanda.subscribers.service import SubscriberNotFoundError

EMAIL = "a@example.com"
TZ = "Asia/Seoul"
NOW = dt.datetime(2026, 3, 2, 4, 0, tzinfo=dt.timezone.utc)


class TestProgress:
    async def test_get_progress_creates_default(self, db_session):
        subscriber = await get_progress(db_session, "new@example.com")
        assert subscriber.current_day == 1
        assert subscriber.status == "active"

    async def test_advance_is_capped(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=29)
        assert (await advance(db_session, EMAIL, 30)).current_day == 30
        assert (await advance(db_session, EMAIL, 30)).current_day == 30

    async def test_advance_unknown_subscriber(self, db_session):
        with pytest.raises(SubscriberNotFoundError):
            await advance(db_session, "ghost@example.com", 30)

    async def test_set_day_can_go_backwards(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=10)
        assert (await set_day(db_session, EMAIL, 2, 30)).current_day == 2

    @pytest.mark.parametrize("day", [0, 31])
    async def test_set_day_range(self, db_session, day):
        await add_subscriber(db_session, EMAIL)
        with pytest.raises(InvalidProgressError):
            await set_day(db_session, EMAIL, day, 30)


class TestPostpone:
    async def test_postpone_current_day(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=4)

        day = await postpone(db_session, EMAIL, TZ, now=NOW)

        assert day == 4
        assert await list_postponed(db_session, EMAIL) == [4]
        marker = (await db_session.execute(select(Attendance).where(Attendance.type == "postponed"))).scalar_one()
        assert (marker.day, marker.completed, marker.date) == (4, False, dt.date(2026, 3, 2))

    async def test_postpone_does_not_move_progress(self, db_session):
        subscriber = await add_subscriber(db_session, EMAIL, current_day=4)
        await postpone(db_session, EMAIL, TZ, day=2, now=NOW)
        assert subscriber.current_day == 4

    async def test_postpone_is_idempotent_per_day(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=4)
        await postpone(db_session, EMAIL, TZ, day=2, now=NOW)
        await postpone(db_session, EMAIL, TZ, day=2, now=NOW)
        assert await list_postponed(db_session, EMAIL) == [2]

    async def test_clear(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=4)
        await postpone(db_session, EMAIL, TZ, day=2, now=NOW)
        await postpone(db_session, EMAIL, TZ, day=3, now=NOW)
        assert await clear_postponed(db_session, EMAIL, 2) == [3]

    async def test_list_for_unknown_subscriber(self, db_session):
        assert await list_postponed(db_session, "ghost@example.com") == []


class TestCompletion:
    async def test_record_completion_is_idempotent(self, db_session):
        first = await record_completion(db_session, EMAIL, 3, TZ, now=NOW)
        second = await record_completion(db_session, EMAIL, 3, TZ, now=NOW)

        assert first.already_completed is False
        assert second.already_completed is True
        rows = (await db_session.execute(select(Attendance).where(Attendance.type == "lunch"))).scalars().all()
        assert len(rows) == 1


class TestReviewQueue:
    async def test_candidates_from_wrong_words_and_postponed_days(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=4)
        await add_words(db_session, 2, count=2)
        db_session.add_all(
            [
                WrongWord(email=EMAIL, word="word2-1", meaning="뜻2-1", wrong_count=3),
                WrongWord(email=EMAIL, word="stale", meaning="", wrong_count=8, mastered=True),
            ]
        )
        await db_session.commit()
        await postpone(db_session, EMAIL, TZ, day=2, now=NOW)

        candidates = {c.word: c for c in await review_candidates(db_session, EMAIL)}

        assert set(candidates) == {"word2-1", "word2-2"}
        assert (candidates["word2-1"].source, candidates["word2-1"].priority) == ("wrong", 6)
        assert (candidates["word2-2"].source, candidates["word2-2"].priority, candidates["word2-2"].day) == (
            "postponed",
            1,
            2,
        )

    async def test_queue_is_a_permutation(self, db_session):
        await add_subscriber(db_session, EMAIL)
        db_session.add_all([WrongWord(email=EMAIL, word=f"w{i}", meaning="", wrong_count=i) for i in range(1, 6)])
        await db_session.commit()

        queue = await build_review_queue(db_session, EMAIL, random.Random(5))

        assert sorted(i.word for i in queue) == [f"w{i}" for i in range(1, 6)]
