"""
Утилиты для временных слотов: пресеты, валидация и форматирование.
"""
import re
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from src.models.poll import TimeSlot


TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"
DATE_FORMAT = "%Y-%m-%d"

# Пресеты для быстрого добавления слотов к дню
PRESET_TIME_SLOTS: Dict[str, Dict[str, str]] = {
    "morning": {"label": "午前", "start": "09:00", "end": "12:00"},
    "afternoon": {"label": "午後", "start": "13:00", "end": "17:00"},
    "evening": {"label": "夜", "start": "18:00", "end": "21:00"},
}

WEEKDAYS = ["Пн", "Вт", "Ср", "Чт", "Пт", "Сб", "Вс"]


def generate_id() -> str:
    """Уникальный идентификатор слота."""
    return str(uuid.uuid4())


def create_default_time_slots() -> List[TimeSlot]:
    """Слоты по умолчанию для нового дня: утро и день."""
    return [
        TimeSlot(id=generate_id(), start_time="09:00", end_time="12:00", label="午前"),
        TimeSlot(id=generate_id(), start_time="13:00", end_time="17:00", label="午後"),
    ]


def preset_slot(day: str, preset: str) -> Optional[TimeSlot]:
    """Слот из пресета. Идентификатор детерминирован: "<дата>-<метка>"."""
    data = PRESET_TIME_SLOTS.get(preset)
    if data is None:
        return None
    return TimeSlot(
        id=f"{day}-{data['label']}",
        start_time=data["start"],
        end_time=data["end"],
        label=data["label"],
    )


def validate_time(value: str) -> bool:
    """Проверка формата HH:mm."""
    return bool(re.match(TIME_PATTERN, value or ""))


def parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError):
        return None


def validate_date(value: str, today: Optional[date] = None) -> bool:
    """Дата в формате yyyy-MM-dd, не раньше сегодняшней."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed >= (today or date.today())


def format_date(value: str) -> str:
    """yyyy-MM-dd -> "dd.MM (Пн)". Если дата не распознана, возвращается как есть."""
    parsed = parse_date(value)
    if parsed is None:
        return value
    return f"{parsed.strftime('%d.%m')} ({WEEKDAYS[parsed.weekday()]})"


def format_time_slot(slot: TimeSlot) -> str:
    if slot.label:
        return f"{slot.label} ({slot.start_time}-{slot.end_time})"
    return f"{slot.start_time}-{slot.end_time}"
