"""Pytest configuration and fixtures."""

import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Wednesday, inside the default 06:00-15:00 UTC working window.
NOW = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
INTERVAL = timedelta(minutes=60)


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now += delta
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from reviewer.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def tracker(storage):
    """Create Tracker with storage."""
    from reviewer.tracker import Tracker

    return Tracker(storage)


@pytest.fixture
def transport():
    """Mock chat transport; send_text returns increasing message ids."""
    message_ids = itertools.count(1000)

    tr = Mock()
    tr.send_text = AsyncMock(side_effect=lambda *args, **kwargs: next(message_ids))
    tr.edit_text = AsyncMock(return_value=None)
    tr.delete_message = AsyncMock(return_value=None)
    tr.pin_message = AsyncMock(return_value=None)
    return tr


@pytest.fixture
def translate():
    from reviewer.translation import TranslateProvider

    return TranslateProvider()


@pytest.fixture
def messages(translate):
    from reviewer.lifecycle import ReviewMessageBuilder

    return ReviewMessageBuilder(translate)


@pytest.fixture
def settings():
    from reviewer.config import Settings, WorkdayOptions

    return Settings(
        bot_token="test-token",
        bot_name="team_review_bot",
        db_path=":memory:",
        workday=WorkdayOptions(notification_interval=INTERVAL),
        notifications_batch=100,
        notifications_delay=timedelta(seconds=60),
        use_polling=False,
    )


@pytest.fixture
def dialogs(storage):
    from reviewer.dialogue import DialogContinuation

    return DialogContinuation(storage)


@pytest.fixture
def lifecycle(storage, transport, messages, tracker, clock):
    from reviewer.lifecycle import ReviewLifecycle

    return ReviewLifecycle(
        tasks=storage,
        teams=storage,
        transport=transport,
        messages=messages,
        tracker=tracker,
        notification_interval=INTERVAL,
        clock=clock,
    )


@pytest.fixture
def router(settings, dialogs, storage, lifecycle, transport, translate, tracker):
    from reviewer.bot import CommandRouter

    return CommandRouter(
        settings=settings,
        dialogs=dialogs,
        tasks=storage,
        teams=storage,
        lifecycle=lifecycle,
        transport=transport,
        translate_provider=translate,
        tracker=tracker,
    )


@pytest.fixture
def holidays(storage, clock):
    from reviewer.holidays import HolidayService

    return HolidayService(storage, timedelta(minutes=60), clock)


@pytest.fixture
def make_team(storage):
    """Factory: store a team with the given (user_id, name) members."""
    from reviewer.models import Team

    async def _make(name: str = "Alpha", chat_id: int = 100, members=((1, "Ann"), (2, "Bob"))):
        team = Team.create(chat_id, name)
        for user_id, user_name in members:
            team.add_player(user_id, user_name, login=user_name.lower())
        await storage.upsert_team(team)
        return team

    return _make


def inbound(text: str, user_id: int = 1, chat_id: int = 100, message_id: int = 1, **kwargs):
    """Build an InboundMessage for router tests."""
    from reviewer.transport import InboundMessage

    return InboundMessage(
        message_id=message_id,
        user_id=user_id,
        chat_id=chat_id,
        text=text,
        user_name=kwargs.pop("user_name", f"User {user_id}"),
        user_login=kwargs.pop("user_login", f"user{user_id}"),
        **kwargs,
    )
