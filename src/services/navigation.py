"""
Навигация: текущий адрес сессии с параметром опроса.

PollStateController читает параметр при загрузке, добавляет новый адрес после
каждого сохранения и заменяет адрес без истории при восстановлении после ошибки.
"""
import logging
from typing import Optional, Protocol
from urllib.parse import unquote, urlencode, urlsplit

from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import settings


logger = logging.getLogger(__name__)


def build_location(encoded: str) -> str:
    """Относительный адрес "/?poll=<encoded>"."""
    return "/?" + urlencode({settings.POLL_QUERY_PARAM: encoded})


def extract_param(link: Optional[str]) -> Optional[str]:
    """
    Достать параметр опроса из ссылки.

    Принимает полный URL, относительный адрес "/?poll=..." или сырое значение
    параметра. Пустой результат -> None.
    """
    if not link or not link.strip():
        return None

    link = link.strip()
    if "?" not in link and "://" not in link:
        return link

    # parse_qs превращает "+" в пробел и ломает Base64 из неэкранированных ссылок
    for pair in urlsplit(link).query.split("&"):
        key, _, value = pair.partition("=")
        if unquote(key) == settings.POLL_QUERY_PARAM:
            value = unquote(value)
            return value if value.strip() else None
    return None


class Navigator(Protocol):
    async def current_param(self) -> Optional[str]:
        ...

    async def push(self, location: str) -> None:
        ...

    async def replace(self, location: str) -> None:
        ...


class ChatNavigator:
    """
    Адрес чата хранится в Redis, поэтому после перезапуска бота чат
    продолжает работу с последним опросом.
    """

    def __init__(self, redis: Redis, chat_id: int) -> None:
        self.redis = redis
        self.chat_id = chat_id

    @property
    def key(self) -> str:
        return f"{settings.NAVIGATION_KEY_PREFIX}{self.chat_id}"

    async def current_location(self) -> Optional[str]:
        try:
            value = await self.redis.get(self.key)
        except (RedisError, OSError) as e:
            logger.warning("Failed to read location for chat %s: %s", self.chat_id, e)
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value or None

    async def current_param(self) -> Optional[str]:
        return extract_param(await self.current_location())

    async def push(self, location: str) -> None:
        logger.debug("Chat %s navigates to %s...", self.chat_id, location[:40])
        await self._store(location)

    async def replace(self, location: str) -> None:
        await self._store(location)

    async def _store(self, location: str) -> None:
        try:
            await self.redis.set(self.key, location)
        except (RedisError, OSError) as e:
            logger.warning("Failed to store location for chat %s: %s", self.chat_id, e)
