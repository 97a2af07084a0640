import html
import logging

from aiogram import Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import LinkPreviewOptions, Message

from src.services.poll_state_service import PollStateController
from src.utils.poll_formatters import (
    format_best_slots,
    format_results,
    format_slot_list,
    parse_answers,
)
from src.utils.time_slots import PRESET_TIME_SLOTS, validate_date

logger = logging.getLogger(__name__)
router = Router()

HELP_TEXT = (
    "📅 <b>Подбор времени для встречи</b>\n\n"
    "<b>Создание:</b>\n"
    "• /new <code>название</code> - новый опрос\n"
    "• /title <code>название</code> - переименовать\n"
    "• /dates <code>2025-01-01 2025-01-02</code> - добавить дни\n"
    "• /preset <code>2025-01-01 morning</code> - добавить слот (morning, afternoon, evening)\n"
    "• /unpreset <code>2025-01-01 morning</code> - убрать слот\n\n"
    "<b>Ответы:</b>\n"
    "• /answer <code>Имя ○×○</code> - ответить (○/× или 1/0 на каждый слот)\n"
    "• /toggle <code>участник слот</code> - поменять один ответ\n\n"
    "<b>Результаты:</b>\n"
    "• /results - таблица\n"
    "• /best - лучшее время\n"
    "• /share - ссылка для участников\n"
    "• /open <code>ссылка</code> - открыть опрос по ссылке\n"
    "• /restore <code>название</code> - восстановить из кэша"
)


@router.message(CommandStart())
@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("new"))
async def cmd_new(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    """Начать новый опрос в этом чате."""
    title = (command.args or "").strip()
    if not title:
        await message.answer("❌ Укажите название: <code>/new Встреча команды</code>")
        return

    logger.info("New poll %r in chat %s", title, message.chat.id)
    await poll_controller.navigator.replace("/")
    await poll_controller.hydrate()
    poll_controller.set_title(title)
    await message.answer(
        f"✅ Опрос <b>{html.escape(title)}</b> создан\n\n"
        "Добавьте дни: <code>/dates 2025-01-01 2025-01-02</code>"
    )


@router.message(Command("title"))
async def cmd_title(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    title = (command.args or "").strip()
    if not title:
        await message.answer("❌ Укажите название")
        return
    poll_controller.set_title(title)
    await message.answer(f"✅ Название: <b>{html.escape(title)}</b>")


@router.message(Command("dates"))
async def cmd_dates(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    """Добавить дни со слотами по умолчанию."""
    days = (command.args or "").split()
    if not days:
        await message.answer("❌ Укажите даты в формате <code>yyyy-mm-dd</code>")
        return

    invalid = [day for day in days if not validate_date(day)]
    if invalid:
        await message.answer(
            "❌ Неверный формат даты или дата в прошлом: " + html.escape(", ".join(invalid))
        )
        return

    added = [day for day in days if poll_controller.add_date(day)]
    if not added:
        await message.answer("⚠️ Эти дни уже есть в опросе")
        return

    await message.answer(
        f"✅ Добавлено дней: {len(added)}\n\n"
        f"{format_slot_list(poll_controller.record)}"
    )


async def _preset_args(message: Message, command: CommandObject):
    parts = (command.args or "").split()
    if len(parts) != 2 or parts[1] not in PRESET_TIME_SLOTS:
        await message.answer(
            "❌ Формат: <code>/preset 2025-01-01 morning</code>\n"
            "Пресеты: " + ", ".join(PRESET_TIME_SLOTS)
        )
        return None
    if not validate_date(parts[0]):
        await message.answer("❌ Неверный формат даты или дата в прошлом")
        return None
    return parts[0], parts[1]


@router.message(Command("preset"))
async def cmd_preset(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    args = await _preset_args(message, command)
    if args is None:
        return

    day, preset = args
    if not poll_controller.add_preset_slot(day, preset):
        await message.answer("⚠️ Такой слот уже есть")
        return
    await message.answer(f"✅ Слот добавлен\n\n{format_slot_list(poll_controller.record)}")


@router.message(Command("unpreset"))
async def cmd_unpreset(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    args = await _preset_args(message, command)
    if args is None:
        return

    day, preset = args
    if not poll_controller.remove_preset_slot(day, preset):
        await message.answer("⚠️ Такого слота нет")
        return
    await message.answer(f"✅ Слот удален\n\n{format_slot_list(poll_controller.record)}")


@router.message(Command("answer"))
async def cmd_answer(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    """Ответ участника: имя и по одному символу на каждый слот."""
    total = poll_controller.total_slots
    if total == 0:
        await message.answer("❌ В опросе еще нет слотов")
        return

    parts = (command.args or "").strip().rsplit(maxsplit=1)
    answers = parse_answers(parts[1], total) if len(parts) == 2 else None
    if answers is None:
        await message.answer(
            f"❌ Формат: <code>/answer Имя {'○' * total}</code>\n"
            f"Нужно ответов: {total}\n\n{format_slot_list(poll_controller.record)}"
        )
        return

    if not poll_controller.submit_answer(parts[0], answers):
        await message.answer("❌ Имя не может быть пустым")
        return
    await message.answer(f"✅ Ответ {html.escape(parts[0].strip())} сохранен")


@router.message(Command("toggle"))
async def cmd_toggle(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    parts = (command.args or "").split()
    try:
        respondent_number, slot_number = (int(part) for part in parts)
    except ValueError:
        await message.answer("❌ Формат: <code>/toggle номер_участника номер_слота</code>")
        return

    if not poll_controller.toggle_answer(respondent_number - 1, slot_number - 1):
        await message.answer("❌ Нет такого участника или слота")
        return
    await message.answer(format_results(poll_controller.record, poll_controller.best_slots()))


@router.message(Command("results"))
async def cmd_results(message: Message, poll_controller: PollStateController) -> None:
    await message.answer(format_results(poll_controller.record, poll_controller.best_slots()))


@router.message(Command("best"))
async def cmd_best(message: Message, poll_controller: PollStateController) -> None:
    await message.answer(format_best_slots(poll_controller.best_slots()))


@router.message(Command("share"))
async def cmd_share(message: Message, poll_controller: PollStateController) -> None:
    url = poll_controller.share_url()
    if not url:
        await message.answer("❌ Не удалось сформировать ссылку, попробуйте позже")
        return
    await message.answer(f"🔗 Ссылка на опрос:\n{url}", link_preview_options=LinkPreviewOptions(is_disabled=True))


@router.message(Command("open"))
async def cmd_open(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    if not await poll_controller.open_link(command.args or ""):
        await message.answer("❌ Ссылка повреждена или не содержит опрос")
        return
    await message.answer(format_results(poll_controller.record, poll_controller.best_slots()))


@router.message(Command("restore"))
async def cmd_restore(message: Message, command: CommandObject, poll_controller: PollStateController) -> None:
    title = (command.args or "").strip()
    if not title or not await poll_controller.restore_cached(title):
        await message.answer("❌ Сохраненный опрос не найден")
        return
    await message.answer(format_results(poll_controller.record, poll_controller.best_slots()))

