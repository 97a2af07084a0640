import asyncio
import logging
import time
from typing import Dict, Optional

from redis.asyncio import Redis

from config.settings import settings
from src.repositories.poll_cache_repository import PollCacheRepository
from src.services.navigation import ChatNavigator
from src.services.poll_state_service import PollStateController
from src.services.scheduler_service import SchedulerService


logger = logging.getLogger(__name__)


class PollSessionRegistry:
    """
    Один PollStateController на чат. Общих изменяемых опросов нет.

    Сессия без обращений дольше SESSION_IDLE_SECONDS выгружается; адрес чата
    остается в Redis, поэтому следующее сообщение загрузит опрос заново.
    """

    def __init__(self, redis: Redis, scheduler: SchedulerService) -> None:
        self.redis = redis
        self.scheduler = scheduler
        self.cache_repo = PollCacheRepository(redis)
        self._sessions: Dict[int, PollStateController] = {}
        self._last_used: Dict[int, float] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, chat_id: int) -> PollStateController:
        """Вернуть сессию чата, создав и загрузив ее при первом обращении."""
        self._last_used[chat_id] = time.monotonic()
        controller = self._sessions.get(chat_id)
        if controller is not None:
            return controller

        async with self._lock:
            controller = self._sessions.get(chat_id)
            if controller is None:
                controller = PollStateController(
                    session_id=str(chat_id),
                    navigator=ChatNavigator(self.redis, chat_id),
                    cache_repo=self.cache_repo,
                    scheduler=self.scheduler,
                )
                await controller.hydrate()
                self._sessions[chat_id] = controller
                logger.info("Poll session created for chat %s", chat_id)
        return controller

    async def close(self, chat_id: int) -> None:
        self._last_used.pop(chat_id, None)
        controller = self._sessions.pop(chat_id, None)
        if controller is not None:
            await controller.close()

    async def close_all(self) -> None:
        for chat_id in list(self._sessions):
            await self.close(chat_id)
        logger.info("All poll sessions closed")

    async def evict_idle(
        self,
        max_idle: float = settings.SESSION_IDLE_SECONDS,
        now: Optional[float] = None,
    ) -> int:
        """
        Выгрузить простаивающие сессии.

        Ожидающая отложенная запись выполняется сразу, чтобы не потерять
        последние изменения.

        Returns:
            Количество выгруженных сессий
        """
        now = time.monotonic() if now is None else now
        idle = [
            chat_id
            for chat_id in list(self._sessions)
            if now - self._last_used.get(chat_id, now) > max_idle
        ]

        async with self._lock:
            for chat_id in idle:
                controller = self._sessions.get(chat_id)
                # Чат мог написать, пока ждали блокировку
                if controller is None or now - self._last_used.get(chat_id, now) <= max_idle:
                    continue
                if self.scheduler.has_pending(controller.session_id):
                    self.scheduler.cancel(controller.session_id)
                    await controller.persist()
                await self.close(chat_id)

        if idle:
            logger.info("Evicted %d idle poll sessions", len(idle))
        return len(idle)
