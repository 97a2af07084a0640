import logging
from typing import Any

from aiogram import Bot, Dispatcher
from redis.asyncio import Redis

from config.settings import settings
from src.handlers import poll_handlers
from src.middlewares.poll_session_middleware import PollSessionMiddleware
from src.services.scheduler_service import SchedulerService
from src.services.session_registry import PollSessionRegistry
from src.utils.error_handler import on_error


logger = logging.getLogger(__name__)


async def setup_bot(bot: Bot, dp: Dispatcher, redis: Redis) -> None:
    """Глобальная настройка бота: планировщик, сессии опросов, middleware, роутеры."""

    # Сохраняем redis и bot для использования в shutdown и middleware
    dp["redis"] = redis  # type: ignore[index]
    dp["bot"] = bot  # type: ignore[index]

    # Планировщик отложенного сохранения опросов
    scheduler_service = SchedulerService()
    await scheduler_service.start()
    dp["scheduler_service"] = scheduler_service  # type: ignore[index]

    # Реестр сессий: по одному опросу на чат
    registry = PollSessionRegistry(redis, scheduler_service)
    scheduler_service.add_periodic(
        "evict_idle_sessions", registry.evict_idle, settings.SESSION_SWEEP_SECONDS
    )
    dp["session_registry"] = registry  # type: ignore[index]

    dp.message.middleware(PollSessionMiddleware(registry))

    # Регистрация роутеров
    dp.include_router(poll_handlers.router)
    dp.errors.register(on_error)

    # Устанавливаем команды бота для автодополнения
    await set_bot_commands(bot)

    logger.info("Настройка бота завершена")

    # Обработка shutdown
    async def on_shutdown(*args: Any, **kwargs: Any) -> None:
        logger.info("Завершение работы...")

        try:
            # Сначала отменяем отложенные записи, затем останавливаем планировщик
            if "session_registry" in dp.workflow_data:
                await dp.workflow_data["session_registry"].close_all()  # type: ignore[index]

            if "scheduler_service" in dp.workflow_data:
                await dp.workflow_data["scheduler_service"].stop()  # type: ignore[index]

            if "redis" in dp.workflow_data:
                await dp.workflow_data["redis"].aclose()  # type: ignore[index]
        except Exception as e:
            logger.error("Ошибка при завершении работы: %s", e)

        logger.info("Завершение работы завершено")

    dp.shutdown.register(on_shutdown)


async def set_bot_commands(bot: Bot) -> None:
    """Установка команд бота для автодополнения и меню через слэш."""
    from aiogram.types import BotCommand, MenuButtonCommands

    commands = [
        BotCommand(command="start", description="🚀 Начать работу с ботом"),
        BotCommand(command="new", description="🆕 Новый опрос"),
        BotCommand(command="dates", description="📅 Добавить дни"),
        BotCommand(command="answer", description="✋ Ответить"),
        BotCommand(command="results", description="📊 Результаты"),
        BotCommand(command="best", description="⭐ Лучшее время"),
        BotCommand(command="share", description="🔗 Ссылка на опрос"),
        BotCommand(command="help", description="❓ Справка по командам"),
    ]

    try:
        await bot.set_my_commands(commands)
        await bot.set_my_commands(commands, language_code="ru")

        await bot.set_chat_menu_button(menu_button=MenuButtonCommands())
        logger.info("Команды бота успешно установлены")
    except Exception as e:
        logger.warning("Не удалось установить команды бота: %s", e)
