import logging
import traceback
import asyncio
from typing import Optional

from aiogram import Bot
from aiogram.types import ErrorEvent

from config.settings import settings


logger = logging.getLogger(__name__)


class ErrorHandler:
    def __init__(self, bot: Optional[Bot] = None) -> None:
        self.bot = bot

    async def handle_error(self, error: Exception, context: str = "") -> None:
        """Обработка ошибки."""
        error_msg = f"Ошибка в {context}: {error}\n{''.join(traceback.format_exception(error))}"
        logger.error(error_msg)

        if self.bot and settings.ADMIN_IDS and settings.ENABLE_ADMIN_NOTIFICATIONS:
            # Отправляем уведомления всем админам параллельно
            async def notify_admin(admin_id: int) -> None:
                try:
                    await self.bot.send_message(
                        admin_id,
                        f"🚨 Ошибка в {context}:\n{error}",
                    )
                except Exception as e:  # noqa: BLE001
                    logger.warning("Failed to send error notification to admin %s: %s", admin_id, e)

            await asyncio.gather(
                *[notify_admin(admin_id) for admin_id in settings.ADMIN_IDS],
                return_exceptions=True
            )


async def on_error(event: ErrorEvent, bot: Bot) -> bool:
    """Глобальный обработчик ошибок диспетчера: логируем и не роняем поллинг."""
    update_id = getattr(event.update, "update_id", None)
    await ErrorHandler(bot).handle_error(event.exception, context=f"update {update_id}")
    return True
