from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import Message, TelegramObject

from src.services.session_registry import PollSessionRegistry


class PollSessionMiddleware(BaseMiddleware):
    """Подставляет в хэндлер сессию опроса текущего чата."""

    def __init__(self, registry: PollSessionRegistry) -> None:
        super().__init__()
        self.registry = registry

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if isinstance(event, Message) and event.chat is not None:
            data["poll_controller"] = await self.registry.get(event.chat.id)
        data["session_registry"] = self.registry
        return await handler(event, data)
