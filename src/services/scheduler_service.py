import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config.settings import settings


logger = logging.getLogger(__name__)


class SchedulerService:
    """
    Отложенное сохранение опросов с "хвостовым" debounce.

    Каждая сессия держит не больше одной задачи с id "persist:<сессия>".
    Повторное планирование заменяет задачу (отмена + новый отсчет), поэтому
    записывается только последнее состояние после паузы в изменениях.
    """

    def __init__(self, delay: float = settings.PERSIST_DEBOUNCE_SECONDS) -> None:
        self.scheduler = AsyncIOScheduler()
        self.delay = delay

    async def start(self) -> None:
        """Запуск планировщика."""
        logger.info("Starting scheduler...")
        self.scheduler.start()
        logger.info("Scheduler started")

    async def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    @staticmethod
    def job_id(session_id: str) -> str:
        return f"persist:{session_id}"

    def schedule(self, session_id: str, write: Callable[[], Awaitable[None]]) -> None:
        """Запланировать запись через self.delay секунд, отменив предыдущую."""
        self.scheduler.add_job(
            self._run_write,
            "date",
            run_date=datetime.now() + timedelta(seconds=self.delay),
            args=[session_id, write],
            id=self.job_id(session_id),
            replace_existing=True,
            misfire_grace_time=None,
        )

    def cancel(self, session_id: str) -> None:
        """Отменить ожидающую запись сессии, если она есть."""
        try:
            self.scheduler.remove_job(self.job_id(session_id))
            logger.debug("Pending write for session %s cancelled", session_id)
        except JobLookupError:
            pass

    def add_periodic(self, job_id: str, job: Callable[[], Awaitable[object]], seconds: float) -> None:
        """Периодическая служебная задача (например, очистка простаивающих сессий)."""
        self.scheduler.add_job(
            job,
            IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
            misfire_grace_time=int(seconds),
        )

    def has_pending(self, session_id: str) -> bool:
        return self.scheduler.get_job(self.job_id(session_id)) is not None

    @staticmethod
    async def _run_write(session_id: str, write: Callable[[], Awaitable[None]]) -> None:
        try:
            await write()
        except Exception as e:  # noqa: BLE001
            logger.error("Error in persist job for session %s: %s", session_id, e, exc_info=True)
