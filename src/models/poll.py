"""
Модели опроса доступности: дни-кандидаты, временные слоты и ответы участников.

Ключи JSON (camelCase) совпадают с форматом уже разосланных ссылок,
поэтому поля объявлены с алиасами.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Answer(str, Enum):
    """Ответ участника на один слот."""

    YES = "○"
    NO = "×"

    def toggled(self) -> "Answer":
        return Answer.NO if self is Answer.YES else Answer.YES


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TimeSlot(_WireModel):
    id: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    label: Optional[str] = None

    def same_range(self, other: "TimeSlot") -> bool:
        """Совпадают ли границы слотов (используется только для пресетов)."""
        return self.start_time == other.start_time and self.end_time == other.end_time


class Candidate(_WireModel):
    date: str
    time_slots: List[TimeSlot] = Field(default_factory=list, alias="timeSlots")


class Respondent(_WireModel):
    name: str
    answers: List[Answer] = Field(default_factory=list)


class PollRecord(_WireModel):
    title: str
    candidates: List[Candidate] = Field(default_factory=list)
    respondents: List[Respondent] = Field(default_factory=list, alias="users")

    # Старый формат (только даты), хранится лишь до миграции
    dates: Optional[List[str]] = None

    @classmethod
    def empty(cls) -> "PollRecord":
        return cls(title="", candidates=[], respondents=[])

    def find_respondent(self, name: str) -> int:
        for idx, respondent in enumerate(self.respondents):
            if respondent.name == name:
                return idx
        return -1


class SlotSummary(BaseModel):
    available: int = 0


class BestSlot(BaseModel):
    candidate_index: int
    time_slot_index: int
    date: str
    time_slot: TimeSlot
    available: int
