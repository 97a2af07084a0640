import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Any, Dict, List, Optional, Tuple

from aiogram.filters import CommandObject
from aiogram.types import Chat, Message

from src.models.poll import Answer, Candidate, PollRecord, Respondent, TimeSlot
from src.repositories.poll_cache_repository import PollCacheRepository
from src.services.navigation import ChatNavigator
from src.services.poll_state_service import PollStateController
from src.services.scheduler_service import SchedulerService


class FakeRedis:
    """Минимальная замена redis.asyncio.Redis: get/set в памяти."""

    def __init__(self) -> None:
        self.data: Dict[str, Any] = {}
        self.set_calls: List[Tuple[str, Any]] = []

    async def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> bool:
        self.set_calls.append((key, value))
        self.data[key] = value
        return True


def make_slot(slot_id: str, start: str = "09:00", end: str = "12:00", label: Optional[str] = None) -> TimeSlot:
    return TimeSlot(id=slot_id, start_time=start, end_time=end, label=label)


def make_poll() -> PollRecord:
    """Опрос: 2 дня, 3 слота, 2 участника."""
    return PollRecord(
        title="Team sync",
        candidates=[
            Candidate(
                date="2030-01-01",
                time_slots=[make_slot("a1", "09:00", "12:00", "午前"), make_slot("a2", "13:00", "17:00", "午後")],
            ),
            Candidate(date="2030-01-02", time_slots=[make_slot("b1", "18:00", "21:00")]),
        ],
        respondents=[
            Respondent(name="Anna", answers=[Answer.YES, Answer.NO, Answer.YES]),
            Respondent(name="Boris", answers=[Answer.YES, Answer.YES, Answer.NO]),
        ],
    )


@pytest.fixture
def fake_redis():
    """Фикстура для хранилища в памяти."""
    return FakeRedis()


@pytest.fixture
def poll():
    return make_poll()


@pytest.fixture
def mock_scheduler():
    """Фикстура для мока SchedulerService (записи не выполняются)."""
    return MagicMock(spec=SchedulerService)


@pytest.fixture
def navigator(fake_redis):
    return ChatNavigator(fake_redis, chat_id=42)


@pytest.fixture
def cache_repo(fake_redis):
    return PollCacheRepository(fake_redis)


@pytest.fixture
def controller(navigator, cache_repo, mock_scheduler):
    """Контроллер до загрузки (UNINITIALIZED)."""
    return PollStateController(
        session_id="42",
        navigator=navigator,
        cache_repo=cache_repo,
        scheduler=mock_scheduler,
    )


@pytest.fixture
def mock_message():
    message = MagicMock(spec=Message)
    message.chat = MagicMock(spec=Chat)
    message.chat.id = 42
    message.answer = AsyncMock()
    return message


def make_command(args: Optional[str]) -> CommandObject:
    command = MagicMock(spec=CommandObject)
    command.args = args
    return command
