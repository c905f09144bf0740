# flycargo/bot/handlers/moderation.py
"""
Хендлеры чата модераторов.
Меню очередей, решения по карточкам, закрытие споров.
"""

from __future__ import annotations

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import CallbackQuery, Message

from flycargo.bot.keyboards import MENU_PREFIX, MENU_REFRESH, get_decision_keyboard, get_menu_keyboard
from flycargo.bot.texts import (
    ENTITY_GONE,
    ERROR_GENERIC,
    QUEUE_EMPTY,
    RESOLVE_USAGE,
    render_card,
    render_menu,
)
from flycargo.common.constants import EntityKind, Region, TypeMsg
from flycargo.common.exceptions import InvalidArgumentError, InvalidStateTransitionError, NotFoundError
from flycargo.common.logger import log_error, log_info
from flycargo.core.disputes.service import DisputeService
from flycargo.core.moderation.gateway import ModerationGateway
from flycargo.core.moderation.models import ModerationAction, ModerationVerb

router = Router(name="moderation")

# Сколько карточек выдавать за одно открытие очереди
QUEUE_PAGE_SIZE = 10


@router.message(CommandStart())
async def cmd_start(message: Message, gateway: ModerationGateway) -> None:
    """Меню модерации с количеством ожидающих объектов."""
    try:
        counts = await gateway.pending_counts()
        await message.answer(render_menu(counts), reply_markup=get_menu_keyboard(counts))
    except Exception as e:
        await log_error(f"Ошибка в cmd_start: {e}", exc_info=True)
        await message.answer(ERROR_GENERIC)


@router.callback_query(F.data == MENU_REFRESH)
async def refresh_menu(callback: CallbackQuery, gateway: ModerationGateway) -> None:
    """Обновляет счётчики в меню."""
    try:
        counts = await gateway.pending_counts()
        await callback.message.edit_text(render_menu(counts), reply_markup=get_menu_keyboard(counts))
        await callback.answer()
    except Exception as e:
        await log_error(f"Ошибка в refresh_menu: {e}", exc_info=True)
        await callback.answer(ERROR_GENERIC)


@router.callback_query(F.data.startswith(MENU_PREFIX))
async def open_queue(callback: CallbackQuery, gateway: ModerationGateway) -> None:
    """Присылает карточки выбранной очереди."""
    try:
        kind = EntityKind(callback.data.removeprefix(MENU_PREFIX))
    except ValueError:
        await callback.answer(ERROR_GENERIC)
        return

    try:
        cards = await gateway.pending(kind)
        if not cards:
            await callback.answer(QUEUE_EMPTY)
            return

        for card in cards[:QUEUE_PAGE_SIZE]:
            await callback.message.answer(
                render_card(card),
                reply_markup=get_decision_keyboard(card.kind, card.entity_id, card.region),
            )
        await callback.answer(f"Показано {min(len(cards), QUEUE_PAGE_SIZE)} из {len(cards)}")
    except Exception as e:
        await log_error(f"Ошибка в open_queue: {e}", exc_info=True)
        await callback.answer(ERROR_GENERIC)


@router.callback_query(F.data.regexp(r"^(approve|reject)_"))
async def apply_decision(callback: CallbackQuery, gateway: ModerationGateway) -> None:
    """Применяет решение модератора и убирает кнопки с карточки."""
    try:
        action = ModerationAction.parse(callback.data)
    except InvalidArgumentError as e:
        await callback.answer(e.message)
        return

    try:
        await gateway.apply(action)
    except NotFoundError:
        await callback.answer(ENTITY_GONE)
        await callback.message.edit_reply_markup(reply_markup=None)
        return
    except InvalidStateTransitionError as e:
        await callback.answer(e.message)
        await callback.message.edit_reply_markup(reply_markup=None)
        return
    except Exception as e:
        await log_error(f"Ошибка в apply_decision: {e}", extra={"data": callback.data}, exc_info=True)
        await callback.answer(ERROR_GENERIC)
        return

    verdict = "✅ Одобрено" if action.verb is ModerationVerb.APPROVE else "❌ Отклонено"
    await log_info(
        f"Модератор {callback.from_user.id}: {action.encode()}",
        type_msg=TypeMsg.INFO,
    )
    await callback.message.edit_text(
        f"{callback.message.html_text}\n\n<b>{verdict}</b>",
        reply_markup=None,
    )
    await callback.answer(verdict)


@router.message(Command("resolve"))
async def cmd_resolve(message: Message, command: CommandObject, disputes: DisputeService) -> None:
    """/resolve <регион> <id заказа> [итог] закрывает спор по заказу."""
    parts = (command.args or "").split(maxsplit=2)
    if len(parts) < 2 or not parts[1].isdigit():
        await message.answer(RESOLVE_USAGE)
        return

    try:
        region = Region(parts[0].upper())
    except ValueError:
        await message.answer(RESOLVE_USAGE)
        return

    result = parts[2] if len(parts) > 2 else None
    try:
        order = await disputes.close_dispute(int(parts[1]), region, result)
    except NotFoundError:
        await message.answer(ENTITY_GONE)
        return
    except Exception as e:
        await log_error(f"Ошибка в cmd_resolve: {e}", exc_info=True)
        await message.answer(ERROR_GENERIC)
        return

    await message.answer(f"Спор по заказу #{order.id} [{region.value}] закрыт")
