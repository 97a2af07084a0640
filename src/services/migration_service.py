"""
Миграция опросов старого формата (только список дат) в формат день + слоты.

Миграция односторонняя и не идемпотентна по идентификаторам: каждый запуск
выдает новые id слотов, поэтому результат нужно сохранить сразу после загрузки.
"""
import logging
from typing import Iterable, List, Tuple

from config.settings import settings
from src.models.poll import Candidate, PollRecord, TimeSlot
from src.utils.time_slots import generate_id


logger = logging.getLogger(__name__)


def default_all_day_slot() -> TimeSlot:
    return TimeSlot(
        id=generate_id(),
        start_time=settings.DEFAULT_SLOT_START,
        end_time=settings.DEFAULT_SLOT_END,
        label=settings.DEFAULT_SLOT_LABEL,
    )


def migrate_legacy(days: Iterable[str]) -> List[Candidate]:
    """
    Преобразовать список дат в кандидатов.

    Пустые и состоящие из пробелов строки отбрасываются. Каждая оставшаяся дата
    получает ровно один слот "на весь день". Порядок дат сохраняется.
    """
    return [
        Candidate(date=day, time_slots=[default_all_day_slot()])
        for day in days
        if isinstance(day, str) and day.strip()
    ]


def needs_migration(record: PollRecord) -> bool:
    """Старый список дат заполнен, а кандидатов нет."""
    return bool(record.dates) and not record.candidates


def canonicalize(record: PollRecord) -> Tuple[PollRecord, bool]:
    """
    Привести запись к текущей схеме.

    Returns:
        Кортеж (запись без поля dates, была ли выполнена миграция)
    """
    if needs_migration(record):
        candidates = migrate_legacy(record.dates or [])
        logger.info(
            "Migrated legacy poll %r: %d dates -> %d candidates",
            record.title,
            len(record.dates or []),
            len(candidates),
        )
        return record.model_copy(update={"candidates": candidates, "dates": None}), True

    if record.dates is not None:
        # Кандидаты уже есть: старый список игнорируется
        return record.model_copy(update={"dates": None}), False

    return record, False
