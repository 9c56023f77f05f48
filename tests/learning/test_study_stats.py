"""Streak and study statistics."""

import datetime as dt

from conftest import add_subscriber
from wordpanda.db.models import Attendance, WrongWord
from wordpanda.learning.stats import compute_streak, get_stats

EMAIL = "a@example.com"
TODAY = dt.date(2026, 3, 2)


def _days_ago(n: int) -> dt.date:
    return TODAY - dt.timedelta(days=n)


class TestComputeStreak:
    def test_consecutive_ending_today(self):
        assert compute_streak([_days_ago(0), _days_ago(1), _days_ago(2), _days_ago(4)], TODAY) == 3

    def test_no_activity_today(self):
        assert compute_streak([_days_ago(1), _days_ago(2)], TODAY) == 0

    def test_empty(self):
        assert compute_streak([], TODAY) == 0


class TestGetStats:
    async def test_stats(self, db_session):
        await add_subscriber(db_session, EMAIL, current_day=6)
        db_session.add_all(
            [
                Attendance(email=EMAIL, date=TODAY, type="lunch", completed=True),
                Attendance(email=EMAIL, date=TODAY, type="morning_words", completed=True),
                Attendance(email=EMAIL, date=_days_ago(1), type="evening", completed=True),
                Attendance(email=EMAIL, date=_days_ago(2), type="postponed", completed=False),
                Attendance(email=EMAIL, date=_days_ago(3), type="lunch", completed=True),
                WrongWord(email=EMAIL, word="a", meaning="", wrong_count=1),
                WrongWord(email=EMAIL, word="b", meaning="", wrong_count=4),
                WrongWord(email=EMAIL, word="c", meaning="", wrong_count=2, mastered=True),
            ]
        )
        await db_session.commit()

        stats = await get_stats(db_session, EMAIL, TODAY, 30)

        assert stats.current_day == 6
        assert stats.total_days == 30
        assert stats.streak == 2
        assert stats.schedule == {"morning": False, "lunch": True, "evening": False}
        assert stats.total_wrong == 2
        assert stats.mastered_count == 1
        assert stats.total_study_days == 3
        assert stats.avg_mastered_per_day == 0.3
        assert [w.word for w in stats.recent_wrong] == ["b", "a"]

    async def test_unknown_subscriber(self, db_session):
        stats = await get_stats(db_session, "ghost@example.com", TODAY, 30)
        assert stats.current_day == 1
        assert stats.streak == 0
        assert stats.avg_mastered_per_day == 0.0
