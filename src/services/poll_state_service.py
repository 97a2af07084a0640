import logging
from enum import Enum
from typing import List, Sequence
from urllib.parse import urlencode

from config.settings import settings
from src.models.poll import Answer, BestSlot, Candidate, PollRecord, Respondent, SlotSummary
from src.repositories.poll_cache_repository import PollCacheRepository
from src.services.migration_service import canonicalize
from src.services.navigation import Navigator, build_location, extract_param
from src.services.poll_codec import decode_poll, encode_poll
from src.services.scheduler_service import SchedulerService
from src.utils.availability import best_slots, slot_summary
from src.utils.index_mapper import total_slots
from src.utils.time_slots import create_default_time_slots, preset_slot


logger = logging.getLogger(__name__)


class PollState(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    READY = "ready"


class PollStateController:
    """
    Владелец изменяемого состояния одного опроса в рамках одной сессии.

    Изменения применяются к записи в памяти сразу; сохранение в кэш и
    обновление адреса выполняются отложенно через SchedulerService, причем
    сохраняется состояние на момент срабатывания, а не на момент изменения.
    """

    def __init__(
        self,
        session_id: str,
        navigator: Navigator,
        cache_repo: PollCacheRepository,
        scheduler: SchedulerService,
    ) -> None:
        self.session_id = session_id
        self.navigator = navigator
        self.cache_repo = cache_repo
        self.scheduler = scheduler
        self.state = PollState.UNINITIALIZED
        self.record = PollRecord.empty()

    @property
    def is_ready(self) -> bool:
        return self.state == PollState.READY

    # ------------------------------------------------------------------
    # Загрузка
    # ------------------------------------------------------------------

    async def hydrate(self) -> PollRecord:
        """
        Загрузить опрос из параметра текущего адреса.

        Нет параметра -> пустой опрос. Параметр не декодируется -> адрес
        заменяется на "/" и сессия стартует с пустым опросом.
        """
        self.state = PollState.HYDRATING
        encoded = await self.navigator.current_param()

        if not encoded:
            self._accept(PollRecord.empty(), persist=False)
            return self.record

        decoded = decode_poll(encoded)
        if decoded is None:
            logger.warning("Invalid poll URL parameter detected for session %s, clearing URL", self.session_id)
            await self.navigator.replace("/")
            self._accept(PollRecord.empty(), persist=False)
            return self.record

        record, migrated = canonicalize(decoded)
        self._accept(record, persist=migrated)
        return self.record

    async def open_link(self, link: str) -> bool:
        """Открыть опрос по ссылке или сырому параметру. False если ссылка битая."""
        encoded = extract_param(link)
        if not encoded or decode_poll(encoded) is None:
            return False

        self.scheduler.cancel(self.session_id)
        await self.navigator.push(build_location(encoded))
        await self.hydrate()
        return True

    async def restore_cached(self, title: str) -> bool:
        """Заменить текущий опрос сохраненным в кэше под этим заголовком."""
        cached = await self.cache_repo.load(title)
        if cached is None:
            return False

        record, _ = canonicalize(cached)
        self.scheduler.cancel(self.session_id)
        self.state = PollState.HYDRATING
        self._accept(record, persist=True)
        return True

    def _accept(self, record: PollRecord, persist: bool) -> None:
        self.record = record
        self.state = PollState.READY
        if persist:
            # Новые id слотов нужно сохранить сразу, иначе следующая загрузка выдаст другие
            self._schedule_persist()

    # ------------------------------------------------------------------
    # Изменения
    # ------------------------------------------------------------------

    def _check_ready(self, operation: str) -> bool:
        if not self.is_ready:
            logger.warning("Ignoring %s for session %s in state %s", operation, self.session_id, self.state.value)
            return False
        return True

    def set_title(self, title: str) -> bool:
        if not self._check_ready("set_title"):
            return False
        self.record.title = title
        self._schedule_persist()
        return True

    def set_candidates(self, candidates: Sequence[Candidate]) -> bool:
        """
        Заменить дни-кандидаты и подогнать длину ответов каждого участника.

        Подгонка позиционная: лишние ответы в конце отбрасываются, недостающие
        дополняются "×". Вставка слотов в середину сдвигает старые ответы.
        """
        if not self._check_ready("set_candidates"):
            return False

        size = total_slots(candidates)
        for respondent in self.record.respondents:
            answers = respondent.answers[:size]
            answers.extend([Answer.NO] * (size - len(answers)))
            respondent.answers = answers

        self.record.candidates = list(candidates)
        self._schedule_persist()
        return True

    def submit_answer(self, name: str, answers: Sequence[Answer]) -> bool:
        """Добавить или полностью перезаписать ответы участника с этим именем."""
        if not self._check_ready("submit_answer"):
            return False

        name = (name or "").strip()
        if not name:
            return False

        respondent = Respondent(name=name, answers=list(answers))
        idx = self.record.find_respondent(name)
        if idx >= 0:
            self.record.respondents[idx] = respondent
        else:
            self.record.respondents.append(respondent)

        self._schedule_persist()
        return True

    def toggle_answer(self, respondent_index: int, flat_index: int) -> bool:
        if not self._check_ready("toggle_answer"):
            return False
        if respondent_index < 0 or respondent_index >= len(self.record.respondents):
            return False

        answers = self.record.respondents[respondent_index].answers
        if flat_index < 0 or flat_index >= len(answers):
            return False

        answers[flat_index] = answers[flat_index].toggled()
        self._schedule_persist()
        return True

    def add_date(self, day: str) -> bool:
        """Добавить день со слотами по умолчанию (в конец, ответы не сдвигаются)."""
        if any(candidate.date == day for candidate in self.record.candidates):
            return False
        candidates = self.record.candidates + [Candidate(date=day, time_slots=create_default_time_slots())]
        return self.set_candidates(candidates)

    def add_preset_slot(self, day: str, preset: str) -> bool:
        """Добавить слот-пресет к дню. Слот с теми же границами не дублируется."""
        slot = preset_slot(day, preset)
        if slot is None:
            return False

        candidates = [candidate.model_copy(deep=True) for candidate in self.record.candidates]
        target = next((c for c in candidates if c.date == day), None)
        if target is None:
            candidates.append(Candidate(date=day, time_slots=[slot]))
        elif any(existing.same_range(slot) for existing in target.time_slots):
            return False
        else:
            target.time_slots.append(slot)
        return self.set_candidates(candidates)

    def remove_preset_slot(self, day: str, preset: str) -> bool:
        """Убрать слоты с границами пресета. День без слотов удаляется."""
        slot = preset_slot(day, preset)
        if slot is None:
            return False

        candidates: List[Candidate] = []
        removed = False
        for candidate in self.record.candidates:
            if candidate.date != day:
                candidates.append(candidate)
                continue
            kept = [existing for existing in candidate.time_slots if not existing.same_range(slot)]
            removed = removed or len(kept) != len(candidate.time_slots)
            if kept:
                candidates.append(candidate.model_copy(update={"time_slots": kept}))

        if not removed:
            return False
        return self.set_candidates(candidates)

    def reset_default_slots(self, day: str) -> bool:
        candidates = [
            candidate.model_copy(update={"time_slots": create_default_time_slots()})
            if candidate.date == day
            else candidate
            for candidate in self.record.candidates
        ]
        if candidates == self.record.candidates:
            return False
        return self.set_candidates(candidates)

    # ------------------------------------------------------------------
    # Чтение
    # ------------------------------------------------------------------

    @property
    def total_slots(self) -> int:
        return total_slots(self.record.candidates)

    def summary(self, candidate_index: int, time_slot_index: int) -> SlotSummary:
        return slot_summary(self.record, candidate_index, time_slot_index)

    def best_slots(self) -> List[BestSlot]:
        return best_slots(self.record)

    def share_url(self) -> str:
        """Абсолютная ссылка для участников. Пустая строка до загрузки или при ошибке."""
        if not self.is_ready:
            return ""
        encoded = encode_poll(self.record)
        if not encoded:
            logger.warning("Failed to encode poll data for sharing")
            return ""
        return f"{settings.PUBLIC_BASE_URL}/?{urlencode({settings.POLL_QUERY_PARAM: encoded})}"

    # ------------------------------------------------------------------
    # Сохранение
    # ------------------------------------------------------------------

    def _schedule_persist(self) -> None:
        self.scheduler.schedule(self.session_id, self.persist)

    async def persist(self) -> None:
        """Записать текущее состояние в кэш и обновить адрес сессии."""
        # Снимок до первого await: кэш и адрес получают одно и то же состояние
        record = self.record.model_copy(deep=True)
        encoded = encode_poll(record)
        await self.cache_repo.save(record)

        if not encoded:
            logger.warning("Failed to encode poll data, staying on current location")
            return
        await self.navigator.push(build_location(encoded))

    async def close(self) -> None:
        """Завершение сессии: отложенная запись отменяется."""
        self.scheduler.cancel(self.session_id)
        self.state = PollState.UNINITIALIZED
