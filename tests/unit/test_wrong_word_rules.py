"""Wrong-word row planning and the review-date ladder."""

import datetime as dt

from wordpanda.db.models import WrongWord
from wordpanda.learning.quiz_service import QuizAnswer, plan_wrong_word_rows
from wordpanda.learning.wrong_words import next_review_date

NOW = dt.datetime(2026, 3, 2, 1, 0, tzinfo=dt.timezone.utc)  # 10:00 KST Monday
TZ = "Asia/Seoul"


def _existing(word: str, count: int, mastered: bool = False) -> WrongWord:
    return WrongWord(
        email="a@example.com",
        word=word,
        meaning=word.upper(),
        wrong_count=count,
        next_review=dt.date(2026, 3, 1),
        mastered=mastered,
    )


class TestNextReviewDate:
    def test_ladder(self):
        assert next_review_date(NOW, 1, TZ) == dt.date(2026, 3, 3)
        assert next_review_date(NOW, 2, TZ) == dt.date(2026, 3, 4)
        assert next_review_date(NOW, 3, TZ) == dt.date(2026, 3, 6)
        assert next_review_date(NOW, 4, TZ) == dt.date(2026, 3, 9)
        assert next_review_date(NOW, 5, TZ) == dt.date(2026, 3, 16)

    def test_capped_at_fourteen_days(self):
        assert next_review_date(NOW, 9, TZ) == dt.date(2026, 3, 16)

    def test_uses_organization_date(self):
        late_utc = dt.datetime(2026, 3, 1, 20, 0, tzinfo=dt.timezone.utc)  # 05:00 KST on 3/2
        assert next_review_date(late_utc, 1, TZ) == dt.date(2026, 3, 3)


class TestPlanWrongWordRows:
    def test_memorized_new_word_writes_nothing(self):
        rows = plan_wrong_word_rows("a@example.com", [QuizAnswer("a", "A", True)], {}, NOW, TZ)
        assert rows == {}

    def test_first_miss(self):
        rows = plan_wrong_word_rows("a@example.com", [QuizAnswer("b", "B", False)], {}, NOW, TZ)
        assert rows["b"]["wrong_count"] == 1
        assert rows["b"]["mastered"] is False
        assert rows["b"]["last_wrong"] == NOW
        assert rows["b"]["next_review"] == dt.date(2026, 3, 3)

    def test_repeat_miss_increments(self):
        rows = plan_wrong_word_rows("a@example.com", [QuizAnswer("b", "B", False)], {"b": _existing("b", 2)}, NOW, TZ)
        assert rows["b"]["wrong_count"] == 3

    def test_memorized_existing_freezes_count(self):
        rows = plan_wrong_word_rows("a@example.com", [QuizAnswer("b", "B", True)], {"b": _existing("b", 2)}, NOW, TZ)
        assert rows["b"]["wrong_count"] == 2
        assert rows["b"]["mastered"] is True
        assert rows["b"]["last_wrong"] == NOW
        assert rows["b"]["next_review"] == dt.date(2026, 3, 1)

    def test_miss_after_mastered_resumes_from_frozen_count(self):
        existing = {"b": _existing("b", 2, mastered=True)}
        rows = plan_wrong_word_rows("a@example.com", [QuizAnswer("b", "B", False)], existing, NOW, TZ)
        assert rows["b"]["wrong_count"] == 3
        assert rows["b"]["mastered"] is False

    def test_duplicate_word_last_answer_wins(self):
        answers = [QuizAnswer("b", "B", False), QuizAnswer("b", "B", True)]
        assert plan_wrong_word_rows("a@example.com", answers, {}, NOW, TZ) == {}

        answers = [QuizAnswer("b", "B", True), QuizAnswer("b", "B", False)]
        rows = plan_wrong_word_rows("a@example.com", answers, {}, NOW, TZ)
        assert rows["b"]["wrong_count"] == 1
