# flycargo/bot/channel.py
"""
Канал модерации: отправка карточек в чат модераторов.
"""

from __future__ import annotations

from typing import Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from flycargo.bot.keyboards import get_decision_keyboard
from flycargo.bot.texts import render_card
from flycargo.common.constants import EntityKind, NotificationChannel, Region, TypeMsg
from flycargo.common.logger import log_degraded, log_info
from flycargo.core.moderation.gateway import ModerationGateway
from flycargo.core.notifications.senders import DispatchResult

SERVICE_NAME = "telegram"


class ModerationChannel:
    """
    Отправляет новые объекты в чат модераторов.

    Сбой Telegram или базы не откатывает создание объекта: он остаётся
    в очереди модерации и доступен из меню бота. submit не поднимает
    исключений, результат отдаётся как DispatchResult.
    """

    def __init__(self, bot: Optional[Bot], chat_id: int, gateway: ModerationGateway) -> None:
        """
        Args:
            bot: Экземпляр бота (None если токен не задан)
            chat_id: ID чата модераторов
            gateway: Шлюз модерации для загрузки карточки
        """
        self._bot = bot
        self._chat_id = chat_id
        self._gateway = gateway

    async def submit(self, kind: EntityKind, entity_id: int, region: Region) -> DispatchResult:
        """
        Публикует карточку объекта с кнопками решения.

        Returns:
            Результат доставки в чат
        """
        destination = str(self._chat_id)
        extra = {"kind": kind.value, "entity_id": entity_id, "region": region.value}

        if self._bot is None or not self._chat_id:
            await log_degraded(SERVICE_NAME, "Чат модераторов не настроен", extra=extra)
            return DispatchResult.failure(NotificationChannel.TELEGRAM, destination, "moderator chat is not configured")

        try:
            card = await self._gateway.card(kind, entity_id, region)
        except Exception as e:
            # объект уже сохранён, он останется в очереди модерации
            await log_degraded(SERVICE_NAME, f"Не удалось загрузить карточку модерации: {e}", extra=extra)
            return DispatchResult.failure(NotificationChannel.TELEGRAM, destination, str(e))

        if card is None:
            return DispatchResult.failure(NotificationChannel.TELEGRAM, destination, "entity not found")

        try:
            await self._bot.send_message(
                chat_id=self._chat_id,
                text=render_card(card),
                reply_markup=get_decision_keyboard(kind, entity_id, region),
            )
        except TelegramAPIError as e:
            await log_degraded(SERVICE_NAME, f"Не удалось отправить карточку модерации: {e}", extra=extra)
            return DispatchResult.failure(NotificationChannel.TELEGRAM, destination, str(e))

        await log_info(f"{kind.value} {entity_id} отправлен на модерацию", type_msg=TypeMsg.DEBUG)
        return DispatchResult.success(NotificationChannel.TELEGRAM, destination)
