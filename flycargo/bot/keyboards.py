# flycargo/bot/keyboards.py
"""
Клавиатуры чата модераторов.
"""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from flycargo.common.constants import EntityKind, Region
from flycargo.core.moderation.models import ModerationAction, ModerationVerb, PendingCounts

# callback_data кнопок меню: moderate_<kind>
MENU_PREFIX = "moderate_"
MENU_REFRESH = "moderate_menu"


def get_menu_keyboard(counts: PendingCounts) -> InlineKeyboardMarkup:
    """Главное меню с очередями модерации."""
    builder = InlineKeyboardBuilder()

    builder.row(
        InlineKeyboardButton(
            text=f"📦 Заказы ({counts.orders})",
            callback_data=f"{MENU_PREFIX}{EntityKind.ORDER.value}",
        ),
    )
    builder.row(
        InlineKeyboardButton(
            text=f"✈️ Рейсы ({counts.flights})",
            callback_data=f"{MENU_PREFIX}{EntityKind.FLIGHT.value}",
        ),
    )
    builder.row(
        InlineKeyboardButton(
            text=f"⭐ Отзывы ({counts.reviews})",
            callback_data=f"{MENU_PREFIX}{EntityKind.REVIEW.value}",
        ),
    )
    builder.row(
        InlineKeyboardButton(text="🔄 Обновить", callback_data=MENU_REFRESH),
    )

    return builder.as_markup()


def get_decision_keyboard(kind: EntityKind, entity_id: int, region: Region) -> InlineKeyboardMarkup:
    """Кнопки «одобрить» и «отклонить» под карточкой."""
    approve = ModerationAction(ModerationVerb.APPROVE, kind, entity_id, region)
    reject = ModerationAction(ModerationVerb.REJECT, kind, entity_id, region)

    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Одобрить", callback_data=approve.encode()),
        InlineKeyboardButton(text="❌ Отклонить", callback_data=reject.encode()),
    )
    return builder.as_markup()
