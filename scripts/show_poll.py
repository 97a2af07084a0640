"""
Скрипт для вывода результатов опроса из ссылки или из кэша Redis.

Использование:
    python scripts/show_poll.py "https://example.com/?poll=..."
    python scripts/show_poll.py --cached "Встреча команды"
"""
import argparse
import asyncio
import html
import re
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from redis.asyncio import Redis

from config.settings import settings
from src.models.poll import PollRecord
from src.repositories.poll_cache_repository import PollCacheRepository
from src.services.migration_service import canonicalize
from src.services.navigation import extract_param
from src.services.poll_codec import decode_poll
from src.utils.availability import best_slots
from src.utils.poll_formatters import format_best_slots, format_results


def _plain(text: str) -> str:
    return html.unescape(re.sub(r"</?b>", "", text))


async def load_cached(title: str):
    redis = Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        db=settings.REDIS_DB,
        decode_responses=True,
    )
    try:
        return await PollCacheRepository(redis).load(title)
    finally:
        await redis.aclose()


def show(poll: PollRecord) -> None:
    record, migrated = canonicalize(poll)
    best = best_slots(record)

    print("=" * 60)
    print(_plain(format_results(record, best)))
    print()
    print(_plain(format_best_slots(best)))
    if migrated:
        print()
        print("⚠️ Опрос в старом формате (только дни), слоты созданы по умолчанию")
    print("=" * 60)


async def main() -> int:
    parser = argparse.ArgumentParser(description="Показать результаты опроса")
    parser.add_argument("source", help="Ссылка на опрос, значение параметра или название (с --cached)")
    parser.add_argument("--cached", action="store_true", help="Загрузить опрос из кэша по названию")
    args = parser.parse_args()

    if args.cached:
        poll = await load_cached(args.source)
    else:
        poll = decode_poll(extract_param(args.source))

    if poll is None:
        print("❌ Опрос не найден или ссылка повреждена")
        return 1

    show(poll)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
