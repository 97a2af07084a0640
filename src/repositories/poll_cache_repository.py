import json
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.models.poll import PollRecord
from src.services.poll_codec import poll_from_data, poll_storage_key, poll_to_json


logger = logging.getLogger(__name__)


class PollCacheRepository:
    """Локальный кэш опросов в Redis: одна запись на очищенный заголовок, без TTL."""

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def save(self, poll: PollRecord) -> bool:
        """Сохранить опрос. Ошибки хранилища логируются и не пробрасываются."""
        try:
            key = poll_storage_key(poll.title)
            await self.redis.set(key, poll_to_json(poll))
            return True
        except (RedisError, OSError) as e:
            logger.warning("Failed to save poll %r to cache: %s", poll.title, e)
            return False
        except Exception as e:  # noqa: BLE001
            logger.error("Unexpected error saving poll %r: %s", poll.title, e, exc_info=True)
            return False

    async def load(self, title: str) -> Optional[PollRecord]:
        """Загрузить опрос по заголовку. None при отсутствии или любой ошибке."""
        try:
            stored = await self.redis.get(poll_storage_key(title))
            if not stored:
                return None
            if isinstance(stored, bytes):
                stored = stored.decode("utf-8")
            return poll_from_data(json.loads(stored))
        except (RedisError, OSError) as e:
            logger.warning("Failed to load poll %r from cache: %s", title, e)
            return None
        except ValueError as e:
            logger.warning("Corrupted cache entry for poll %r: %s", title, e)
            return None
