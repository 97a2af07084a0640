"""Утилиты для слотов опроса: индексы, подсчет доступности и форматирование."""

from .availability import (
    best_slots,
    count_available,
    slot_summary,
)
from .index_mapper import (
    NOT_FOUND,
    flatten_index,
    total_slots,
    unflatten_index,
)

__all__ = [
    'best_slots',
    'count_available',
    'slot_summary',
    'NOT_FOUND',
    'flatten_index',
    'total_slots',
    'unflatten_index',
]
