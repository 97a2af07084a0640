"""
Сериализация опроса в строку для URL и обратно.

Формат: JSON -> UTF-8 -> Base64. Старые ссылки передавали JSON в
percent-encoding, поэтому декодер умеет откатываться на него.
Ни одна функция модуля не выбрасывает исключений наружу.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Optional
from urllib.parse import unquote

from pydantic import ValidationError

from config.settings import settings
from src.models.poll import PollRecord


logger = logging.getLogger(__name__)

BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


def poll_to_json(poll: PollRecord) -> str:
    """Каноничное JSON-представление опроса."""
    return json.dumps(
        poll.model_dump(mode="json", by_alias=True, exclude_none=True),
        ensure_ascii=False,
    )


def poll_from_data(data: Any) -> Optional[PollRecord]:
    """
    Проверить структуру и собрать модель.

    Объект должен содержать title, candidates или dates, и users.
    """
    if not isinstance(data, dict):
        return None
    if "title" not in data or "users" not in data:
        return None
    if "candidates" not in data and "dates" not in data:
        return None

    try:
        return PollRecord.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid poll data structure: %s", str(e)[:200])
        return None


def encode_poll(poll: PollRecord) -> str:
    """Опрос -> строка для URL. Пустая строка означает "пропустить сохранение"."""
    try:
        return base64.b64encode(poll_to_json(poll).encode("utf-8")).decode("ascii")
    except Exception as e:  # noqa: BLE001
        logger.error("Failed to encode poll data: %s", e, exc_info=True)
        return ""


def _decode_text(encoded: str) -> str:
    if not BASE64_PATTERN.match(encoded):
        logger.debug("Base64 pattern check failed, using URL decode fallback")
        return unquote(encoded)

    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        logger.debug("Base64 decode error: %s, using URL decode fallback", e)
        return unquote(encoded)


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def decode_poll(encoded: Optional[str]) -> Optional[PollRecord]:
    """Строка из URL -> опрос. None при любой ошибке формата."""
    if not encoded or not isinstance(encoded, str) or not encoded.strip():
        return None

    encoded = encoded.strip()
    try:
        logger.debug("Decoding URL param: %s...", encoded[:20])
        data = _parse_json(_decode_text(encoded))
        if data is None:
            # Валидный Base64, но внутри не JSON: пробуем percent-encoding
            data = _parse_json(unquote(encoded))
        return poll_from_data(data)
    except Exception as e:  # noqa: BLE001
        logger.warning("Failed to decode poll from URL (length %d): %s", len(encoded), e)
        return None


def poll_storage_key(title: str) -> str:
    """Ключ кэша: префикс + заголовок без небезопасных символов."""
    safe_title = UNSAFE_KEY_CHARS.sub("", title) if isinstance(title, str) else ""
    return f"{settings.POLL_STORAGE_PREFIX}{safe_title}"
