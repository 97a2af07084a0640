import asyncio
import logging
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramNetworkError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import settings
from src.bot import setup_bot


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(settings.LOG_FILE),
            logging.StreamHandler(),
        ],
    )


async def check_redis(redis: Redis) -> None:
    """Кэш опросов необязателен: без Redis бот работает, но чаты не переживут перезапуск."""
    try:
        await redis.ping()
        logger.info("Redis доступен: %s:%s", settings.REDIS_HOST, settings.REDIS_PORT)
    except (RedisError, OSError) as e:
        logger.warning("Redis недоступен, опросы будут храниться только в памяти: %s", e)


async def main() -> int:
    """Точка входа для запуска бота подбора времени."""
    configure_logging()
    logger.info("Запуск бота подбора времени встречи...")

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    redis = Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        db=settings.REDIS_DB,
        decode_responses=True,
    )
    dp = Dispatcher()

    try:
        me = await bot.get_me()
        logger.info("Бот @%s подключен к Telegram API", me.username)
        await check_redis(redis)

        # Планировщик, сессии, middleware и роутеры; остановка через dp.shutdown
        await setup_bot(bot, dp, redis)
        await dp.start_polling(bot, handle_as_tasks=True, close_bot_session=True)
    except TelegramNetworkError as e:
        logger.error("Ошибка сети Telegram: %s", e)
        await bot.session.close()
        await redis.aclose()
        return 1

    logger.info("Бот остановлен")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Бот остановлен пользователем")
