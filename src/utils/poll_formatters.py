"""
Текстовое представление опроса для сообщений бота.
"""
import html
from typing import List, Optional, Sequence

from src.models.poll import Answer, BestSlot, PollRecord
from src.utils.availability import count_available
from src.utils.index_mapper import flatten_candidates
from src.utils.time_slots import format_date, format_time_slot


BEST_SLOTS_LIMIT = 5

_ANSWER_ALIASES = {
    "○": Answer.YES,
    "o": Answer.YES,
    "1": Answer.YES,
    "+": Answer.YES,
    "×": Answer.NO,
    "x": Answer.NO,
    "0": Answer.NO,
    "-": Answer.NO,
}


def parse_answers(raw: str, expected: int) -> Optional[List[Answer]]:
    """
    Разобрать строку ответов вида "○×○", "101" или "+ - +".

    Returns:
        Список ответов длины expected или None, если формат неверный.
    """
    symbols = [ch for ch in (raw or "").lower() if not ch.isspace()]
    if len(symbols) != expected:
        return None

    answers = []
    for symbol in symbols:
        answer = _ANSWER_ALIASES.get(symbol)
        if answer is None:
            return None
        answers.append(answer)
    return answers


def format_slot_list(poll: PollRecord) -> str:
    """Нумерованный (с 1) список слотов в порядке плоского индекса."""
    lines = [
        f"{flat_index + 1}. {html.escape(format_date(candidate.date))} {html.escape(format_time_slot(slot))}"
        for flat_index, _, _, candidate, slot in flatten_candidates(poll.candidates)
    ]
    return "\n".join(lines) if lines else "Дни еще не выбраны"


def format_results(poll: PollRecord, best: Sequence[BestSlot]) -> str:
    title = html.escape(poll.title) if poll.title else "Без названия"
    lines = [f"📅 <b>{title}</b>", ""]

    best_keys = {(item.candidate_index, item.time_slot_index) for item in best}
    for flat_index, candidate_index, time_slot_index, candidate, slot in flatten_candidates(poll.candidates):
        mark = " ⭐" if (candidate_index, time_slot_index) in best_keys else ""
        lines.append(
            f"{flat_index + 1}. {html.escape(format_date(candidate.date))} {html.escape(format_time_slot(slot))}: "
            f"{count_available(poll, flat_index)}/{len(poll.respondents)}{mark}"
        )

    if not poll.candidates:
        lines.append("Дни еще не выбраны")

    if poll.respondents:
        lines.append("")
        lines.append("<b>Участники:</b>")
        for idx, respondent in enumerate(poll.respondents, start=1):
            answers = "".join(answer.value for answer in respondent.answers)
            lines.append(f"{idx}. {html.escape(respondent.name)}: {answers}")

    return "\n".join(lines)


def format_best_slots(best: Sequence[BestSlot]) -> str:
    if not best:
        return "Пока нет подходящего времени"

    lines = ["⭐ <b>Лучшее время:</b>"]
    for item in best[:BEST_SLOTS_LIMIT]:
        lines.append(
            f"• {html.escape(format_date(item.date))} {html.escape(format_time_slot(item.time_slot))} "
            f"(могут {item.available})"
        )
    if len(best) > BEST_SLOTS_LIMIT:
        lines.append(f"…и еще {len(best) - BEST_SLOTS_LIMIT}")
    return "\n".join(lines)
