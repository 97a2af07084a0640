"""
Подсчет доступности по слотам и выбор лучших слотов.

Политика выбора лучших слотов: все слоты с максимальным числом участников
(ничьи включаются). Если максимум равен нулю, список пуст.
"""
from typing import List

from src.models.poll import Answer, BestSlot, PollRecord, SlotSummary
from src.utils.index_mapper import NOT_FOUND, flatten_candidates, flatten_index


def count_available(poll: PollRecord, flat_index: int) -> int:
    """Количество участников с ответом "○" на слот с плоским индексом."""
    if flat_index < 0:
        return 0
    return sum(
        1
        for respondent in poll.respondents
        if flat_index < len(respondent.answers) and respondent.answers[flat_index] is Answer.YES
    )


def slot_summary(poll: PollRecord, candidate_index: int, time_slot_index: int) -> SlotSummary:
    """Сводка по одному слоту. Отсутствующий ответ считается отрицательным."""
    flat_index = flatten_index(poll.candidates, candidate_index, time_slot_index)
    if flat_index == NOT_FOUND:
        return SlotSummary(available=0)
    return SlotSummary(available=count_available(poll, flat_index))


def best_slots(poll: PollRecord) -> List[BestSlot]:
    """Все слоты с максимальным числом доступных участников, в порядке плоского индекса."""
    if not poll.respondents or not poll.candidates:
        return []

    scored: List[BestSlot] = [
        BestSlot(
            candidate_index=candidate_index,
            time_slot_index=time_slot_index,
            date=candidate.date,
            time_slot=slot,
            available=count_available(poll, flat_index),
        )
        for flat_index, candidate_index, time_slot_index, candidate, slot in flatten_candidates(poll.candidates)
    ]
    if not scored:
        return []

    best = max(item.available for item in scored)
    if best == 0:
        return []
    return [item for item in scored if item.available == best]
