"""
Тесты реестра сессий и middleware.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from aiogram.types import CallbackQuery

from src.middlewares.poll_session_middleware import PollSessionMiddleware
from src.services.navigation import build_location
from src.services.poll_codec import encode_poll
from src.services.poll_state_service import PollState
from src.services.session_registry import PollSessionRegistry

from tests.conftest import make_poll


@pytest.mark.asyncio
async def test_registry_creates_one_hydrated_session_per_chat(fake_redis, mock_scheduler):
    fake_redis.data["time-hub-location:1"] = build_location(encode_poll(make_poll()))
    registry = PollSessionRegistry(fake_redis, mock_scheduler)

    first = await registry.get(1)
    again = await registry.get(1)
    other = await registry.get(2)

    assert first is again
    assert first is not other
    assert first.record == make_poll()
    assert other.record.title == ""
    assert len(registry) == 2


@pytest.mark.asyncio
async def test_registry_close_cancels_pending_write(fake_redis, mock_scheduler):
    registry = PollSessionRegistry(fake_redis, mock_scheduler)
    controller = await registry.get(1)
    await registry.get(2)

    await registry.close(1)
    assert controller.state == PollState.UNINITIALIZED
    mock_scheduler.cancel.assert_called_once_with("1")

    await registry.close_all()
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_middleware_injects_controller(fake_redis, mock_scheduler, mock_message):
    registry = PollSessionRegistry(fake_redis, mock_scheduler)
    middleware = PollSessionMiddleware(registry)
    handler = AsyncMock(return_value="handled")
    data = {}

    result = await middleware(handler, mock_message, data)

    assert result == "handled"
    assert data["poll_controller"] is await registry.get(42)
    assert data["session_registry"] is registry
    handler.assert_awaited_once_with(mock_message, data)


@pytest.mark.asyncio
async def test_middleware_skips_non_message_events(fake_redis, mock_scheduler):
    registry = PollSessionRegistry(fake_redis, mock_scheduler)
    middleware = PollSessionMiddleware(registry)
    handler = AsyncMock()
    data = {}

    await middleware(handler, MagicMock(spec=CallbackQuery), data)

    assert "poll_controller" not in data
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_evict_idle_unloads_only_idle_sessions(fake_redis, mock_scheduler):
    mock_scheduler.has_pending.return_value = False
    registry = PollSessionRegistry(fake_redis, mock_scheduler)
    idle = await registry.get(1)
    registry._last_used[1] -= 120
    await registry.get(2)

    evicted = await registry.evict_idle(max_idle=60)

    assert evicted == 1
    assert len(registry) == 1
    assert idle.state == PollState.UNINITIALIZED
    assert (await registry.get(2)).is_ready


@pytest.mark.asyncio
async def test_evict_idle_flushes_pending_write(fake_redis, mock_scheduler):
    mock_scheduler.has_pending.return_value = True
    registry = PollSessionRegistry(fake_redis, mock_scheduler)
    controller = await registry.get(1)
    controller.set_title("Offsite")

    await registry.evict_idle(max_idle=60, now=registry._last_used[1] + 61)

    assert "time-hub-poll-Offsite" in fake_redis.data
    assert len(registry) == 0

    # Следующее обращение загружает опрос по сохраненному адресу
    reloaded = await registry.get(1)
    assert reloaded is not controller
    assert reloaded.record.title == "Offsite"
