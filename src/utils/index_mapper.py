"""
Преобразование координат (день, слот) в плоский индекс массива ответов и обратно.

Порядок плоских индексов задается порядком кандидатов и их слотов и должен
оставаться стабильным на протяжении жизни опроса.
"""
from typing import Iterator, Optional, Sequence, Tuple

from src.models.poll import Candidate, TimeSlot


NOT_FOUND = -1


def total_slots(candidates: Sequence[Candidate]) -> int:
    """Общее количество слотов по всем дням."""
    return sum(len(candidate.time_slots) for candidate in candidates)


def has_valid_candidates(candidates: Sequence[Candidate]) -> bool:
    """Есть ли хотя бы один день с хотя бы одним слотом."""
    return any(candidate.time_slots for candidate in candidates)


def flatten_index(candidates: Sequence[Candidate], candidate_index: int, time_slot_index: int) -> int:
    """
    Плоский индекс пары (день, слот).

    Returns:
        Сумма слотов предыдущих дней + индекс слота, либо NOT_FOUND
        если любая из координат вне диапазона.
    """
    if candidate_index < 0 or candidate_index >= len(candidates):
        return NOT_FOUND
    if time_slot_index < 0 or time_slot_index >= len(candidates[candidate_index].time_slots):
        return NOT_FOUND

    return total_slots(candidates[:candidate_index]) + time_slot_index


def unflatten_index(candidates: Sequence[Candidate], flat_index: int) -> Optional[Tuple[int, int]]:
    """Обратное преобразование: плоский индекс -> (день, слот) или None."""
    if flat_index < 0:
        return None

    offset = 0
    for candidate_index, candidate in enumerate(candidates):
        count = len(candidate.time_slots)
        if flat_index < offset + count:
            return candidate_index, flat_index - offset
        offset += count
    return None


def flatten_candidates(
    candidates: Sequence[Candidate],
) -> Iterator[Tuple[int, int, int, Candidate, TimeSlot]]:
    """Обход всех слотов в порядке плоского индекса."""
    flat_index = 0
    for candidate_index, candidate in enumerate(candidates):
        for time_slot_index, slot in enumerate(candidate.time_slots):
            yield flat_index, candidate_index, time_slot_index, candidate, slot
            flat_index += 1

