"""Morning words, morning test and lunch test dispatch runs against a real store."""

import asyncio

import pytest
from sqlalchemy import event, select, text

from conftest import (
    MONDAY_LUNCH,
    MONDAY_MORNING,
    FakeGenerator,
    StalledGenerator,
    add_subscriber,
    add_words,
    seoul,
)
from wordpanda.database import get_engine
from wordpanda.db.models import Attendance
from wordpanda.dispatch.service import (
    DispatchError,
    run_lunch_test,
    run_morning_test,
    run_morning_words,
)


class _StatementCounter:
    def __init__(self) -> None:
        self.statements: list[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    def matching(self, fragment: str) -> list[str]:
        return [s for s in self.statements if fragment in s]


@pytest.fixture
def statements(database):
    counter = _StatementCounter()
    sync_engine = get_engine().sync_engine
    event.listen(sync_engine, "before_cursor_execute", counter)
    yield counter
    event.remove(sync_engine, "before_cursor_execute", counter)


async def _markers(db, marker: str) -> list[Attendance]:
    result = await db.execute(select(Attendance).where(Attendance.type == marker))
    return list(result.scalars().all())


class TestMorningWords:
    async def test_sends_to_eligible_and_records_marker(self, db_session, deps, email_channel, generator):
        await add_subscriber(db_session, "a@example.com", current_day=1)
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.dispatch == "morning-words"
        assert summary.date.isoformat() == "2026-03-02"
        assert summary.total_subscribers == 1
        assert summary.eligible == 1
        assert summary.sent == 1
        assert summary.results[0].email_sent is True
        assert [email for email, _ in email_channel.sent] == ["a@example.com"]
        assert "word1-1" in email_channel.sent[0][1].html
        assert "generated" in email_channel.sent[0][1].html
        markers = await _markers(db_session, "morning_words")
        assert [(m.email, m.day) for m in markers] == [("a@example.com", 1)]

    async def test_second_invocation_is_a_no_op(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        await run_morning_words(db_session, deps, now=MONDAY_MORNING)
        second = await run_morning_words(db_session, deps, now=seoul(2026, 3, 2, 7, 32))

        assert second.sent == 0
        assert second.skipped_already_sent == 1
        assert len(email_channel.sent) == 1
        assert len(await _markers(db_session, "morning_words")) == 1

    async def test_next_day_sends_again(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        await run_morning_words(db_session, deps, now=MONDAY_MORNING)
        await run_morning_words(db_session, deps, now=seoul(2026, 3, 3, 7, 30))

        assert len(email_channel.sent) == 2

    async def test_outside_time_window(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=seoul(2026, 3, 2, 9, 0))

        assert summary.total_subscribers == 1
        assert summary.eligible == 0
        assert email_channel.sent == []

    async def test_personal_morning_time(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "early@example.com", morning_time="06:00")
        await add_subscriber(db_session, "default@example.com")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=seoul(2026, 3, 2, 6, 2))

        assert [r.email for r in summary.results] == ["early@example.com"]

    async def test_inactive_weekday_and_status(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "weekend@example.com", active_days=[0, 6])
        await add_subscriber(db_session, "paused@example.com", status="paused")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.total_subscribers == 1
        assert summary.eligible == 0
        assert email_channel.sent == []

    async def test_no_channel_configured(self, db_session, deps, email_channel, telegram_channel):
        await add_subscriber(db_session, "a@example.com", email_enabled=False, telegram_enabled=True)
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.eligible == 0
        assert email_channel.sent == telegram_channel.sent == []

    async def test_day_without_words_is_skipped(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com", current_day=7)
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.eligible == 1
        assert summary.skipped_no_words == 1
        assert summary.sent == 0
        assert summary.results == []
        assert email_channel.sent == []
        assert await _markers(db_session, "morning_words") == []

    async def test_one_catalog_query_and_one_generation_per_day(
        self, db_session, deps, generator, email_channel, statements
    ):
        for i in range(4):
            await add_subscriber(db_session, f"d1-{i}@example.com", current_day=1)
        for i in range(3):
            await add_subscriber(db_session, f"d2-{i}@example.com", current_day=2)
        await add_words(db_session, 1)
        await add_words(db_session, 2)
        statements.statements.clear()

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.sent == 7
        assert len(statements.matching("FROM words")) == 1
        assert len(generator.prompts) == 2

    async def test_generation_failure_still_sends(self, db_session, deps, email_channel):
        deps.generator = FakeGenerator(error=RuntimeError("quota exceeded"))
        await add_subscriber(db_session, "a@example.com")
        await add_subscriber(db_session, "b@example.com")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.sent == 2
        assert len(deps.generator.prompts) == 1
        assert "AI 비즈니스 예문" not in email_channel.sent[0][1].html

    async def test_partial_channel_failure(self, db_session, deps, email_channel, telegram_channel):
        telegram_channel.outcome = RuntimeError("bot blocked")
        await add_subscriber(db_session, "a@example.com", telegram_enabled=True, telegram_chat_id="42")
        await add_subscriber(db_session, "b@example.com")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        first, second = summary.results
        assert (first.email, first.email_sent, first.telegram_sent, first.gchat_sent) == (
            "a@example.com",
            True,
            False,
            False,
        )
        assert (second.email, second.email_sent, second.telegram_sent) == ("b@example.com", True, False)
        assert summary.sent == 2
        assert [email for email, _ in email_channel.sent] == ["a@example.com", "b@example.com"]

    async def test_stalled_generation_falls_back_to_no_section(self, db_session, deps, email_channel):
        deps.generator = StalledGenerator()
        deps.config.http_timeout_seconds = 0.05
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        summary = await asyncio.wait_for(run_morning_words(db_session, deps, now=MONDAY_MORNING), timeout=10)

        assert summary.sent == 1
        assert "AI 비즈니스 예문" not in email_channel.sent[0][1].html
        assert len(await _markers(db_session, "morning_words")) == 1

    async def test_failed_send_still_marks(self, db_session, deps, email_channel):
        email_channel.outcome = False
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        summary = await run_morning_words(db_session, deps, now=MONDAY_MORNING)

        assert summary.sent == 0
        assert summary.results[0].email_sent is False
        assert len(await _markers(db_session, "morning_words")) == 1

    async def test_subscriber_load_failure_is_fatal(self, db_session, deps):
        await db_session.execute(text("DROP TABLE subscribers"))
        await db_session.commit()

        with pytest.raises(DispatchError):
            await run_morning_words(db_session, deps, now=MONDAY_MORNING)


class TestMorningTest:
    async def test_fires_after_delay(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        early = await run_morning_test(db_session, deps, now=MONDAY_MORNING)
        on_time = await run_morning_test(db_session, deps, now=seoul(2026, 3, 2, 8, 0))

        assert early.eligible == 0
        assert on_time.sent == 1
        assert "아침 테스트" in email_channel.sent[0][1].subject
        assert len(await _markers(db_session, "morning_test")) == 1

    async def test_does_not_share_marker_with_morning_words(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        await run_morning_words(db_session, deps, now=MONDAY_MORNING)
        summary = await run_morning_test(db_session, deps, now=seoul(2026, 3, 2, 8, 0))

        assert summary.skipped_already_sent == 0
        assert summary.sent == 1

    async def test_no_generation(self, db_session, deps, generator):
        await add_subscriber(db_session, "a@example.com")
        await add_words(db_session, 1)

        await run_morning_test(db_session, deps, now=seoul(2026, 3, 2, 8, 0))

        assert generator.prompts == []


class TestLunchTest:
    async def test_sends_signed_links(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com", current_day=2)
        await add_words(db_session, 2, count=5)

        summary = await run_lunch_test(db_session, deps, now=MONDAY_LUNCH)

        assert summary.sent == 1
        message = email_channel.sent[0][1]
        assert "/api/v1/actions/complete?" in message.text
        assert "token=" in message.text
        assert message.html.count("/api/v1/actions/relearn?") == 5
        assert len(await _markers(db_session, "lunch_test")) == 1

    async def test_same_shuffle_for_a_day(self, db_session, deps, email_channel):
        await add_subscriber(db_session, "a@example.com")
        await add_subscriber(db_session, "b@example.com")
        await add_words(db_session, 1, count=8)

        await run_lunch_test(db_session, deps, now=MONDAY_LUNCH)

        first, second = (m.chat_text.split("\n\n", 2)[2] for _, m in email_channel.sent)
        assert first == second
        assert {line.split(". ", 1)[1] for line in first.splitlines()} == {f"word1-{n}" for n in range(1, 9)}
