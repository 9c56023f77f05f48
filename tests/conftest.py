"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import datetime as dt
import random
from collections.abc import AsyncGenerator, Callable
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wordpanda.config import Settings, get_settings
from wordpanda.content.generator import ContentGenerator
from wordpanda.database import close_db, get_engine, get_session_factory, init_db
from wordpanda.db.base import Base
from wordpanda.db.models import ConfigEntry, Subscriber, SubscriberSettings, Word
from wordpanda.dispatch.service import DispatchDeps
from wordpanda.learning.action_links import ActionLinkSigner
from wordpanda.notifications.channels import Message, NotificationChannel
from wordpanda.notifications.notifier import Notifier
from wordpanda.subscribers.settings import (
    ChannelSettings,
    Recipient,
    email_configured,
    google_chat_configured,
    telegram_configured,
)

SEOUL = ZoneInfo("Asia/Seoul")
ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]
TEST_SECRET = "test-action-secret"


def seoul(year: int, month: int, day: int, hour: int, minute: int = 0) -> dt.datetime:
    """An aware datetime at the given Seoul wall-clock time."""
    return dt.datetime(year, month, day, hour, minute, tzinfo=SEOUL)


# 2026-03-02 is a Monday.
MONDAY_MORNING = seoul(2026, 3, 2, 7, 30)
MONDAY_LUNCH = seoul(2026, 3, 2, 13, 0)
MONDAY_EVENING = seoul(2026, 3, 2, 16, 0)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

_PREDICATES: dict[str, Callable[[ChannelSettings], bool]] = {
    "email": email_configured,
    "telegram": telegram_configured,
    "google_chat": google_chat_configured,
}


class FakeChannel(NotificationChannel):
    """Records deliveries; ``outcome`` is True, False or an exception to raise."""

    def __init__(self, name: str, outcome: bool | Exception = True) -> None:
        self.name = name
        self.outcome = outcome
        self.sent: list[tuple[str, Message]] = []

    def is_configured(self, settings: ChannelSettings) -> bool:
        return _PREDICATES[self.name](settings)

    async def send(self, recipient: Recipient, message: Message) -> bool:
        if isinstance(self.outcome, Exception):
            raise self.outcome
        self.sent.append((recipient.email, message))
        return self.outcome


class FakeGenerator(ContentGenerator):
    def __init__(self, text: str = "[Review]\n- generated", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


class StalledGenerator(ContentGenerator):
    """A provider that never answers."""

    async def generate(self, prompt: str) -> str:
        await asyncio.sleep(3600)
        return ""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _test_settings(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file per test."""
    monkeypatch.setenv("WP_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'wordpanda.db'}")
    monkeypatch.setenv("WP_ACTION_LINK_SECRET", TEST_SECRET)
    monkeypatch.setenv("WP_DASHBOARD_URL", "https://panda.test")
    monkeypatch.setenv("WP_DISPATCH_TRIGGER_TOKEN", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def session_factory(database) -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(database) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against the app, database already initialized."""
    from wordpanda.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


async def add_subscriber(
    db: AsyncSession,
    email: str,
    current_day: int = 1,
    active_days: list[int] | None = None,
    status: str = "active",
    name: str | None = None,
    **settings,
) -> Subscriber:
    subscriber = Subscriber(
        email=email,
        name=name or email.split("@")[0],
        status=status,
        current_day=current_day,
        active_days=ALL_DAYS if active_days is None else active_days,
        postponed_days=[],
    )
    db.add(subscriber)
    if settings:
        db.add(SubscriberSettings(email=email, **settings))
    await db.commit()
    return subscriber


async def add_words(db: AsyncSession, day: int, count: int = 3) -> list[Word]:
    words = [Word(day=day, word=f"word{day}-{i}", meaning=f"뜻{day}-{i}") for i in range(1, count + 1)]
    db.add_all(words)
    await db.commit()
    return words


async def set_total_days(db: AsyncSession, total_days: int) -> None:
    db.add(ConfigEntry(key="TotalDays", value=str(total_days)))
    await db.commit()


# ---------------------------------------------------------------------------
# Dispatch dependencies
# ---------------------------------------------------------------------------


@pytest.fixture
def email_channel() -> FakeChannel:
    return FakeChannel("email")


@pytest.fixture
def telegram_channel() -> FakeChannel:
    return FakeChannel("telegram")


@pytest.fixture
def gchat_channel() -> FakeChannel:
    return FakeChannel("google_chat")


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def deps(email_channel, telegram_channel, gchat_channel, generator) -> DispatchDeps:
    config = Settings()
    return DispatchDeps(
        config=config,
        notifier=Notifier([email_channel, telegram_channel, gchat_channel], timeout=1.0),
        generator=generator,
        links=ActionLinkSigner.from_settings(config),
        rng=random.Random(7),
    )
