# flycargo/bot/middleware/moderators.py
"""
Доступ к боту только из чата модераторов.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from flycargo.common.logger import log_warning


def _chat_id(event: TelegramObject) -> Optional[int]:
    if isinstance(event, Message):
        return event.chat.id
    if isinstance(event, CallbackQuery) and event.message is not None:
        return event.message.chat.id
    return None


class ModeratorChatMiddleware(BaseMiddleware):
    """
    Пропускает события только из чата модераторов.

    Решения модерации и закрытие споров не проверяют права сами,
    эта проверка единственная.
    """

    def __init__(self, chat_id: int) -> None:
        self._chat_id = chat_id

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        chat_id = _chat_id(event)
        if not self._chat_id or chat_id != self._chat_id:
            await log_warning(f"Событие из чужого чата {chat_id} отброшено")
            if isinstance(event, CallbackQuery):
                await event.answer("Недоступно")
            return None
        return await handler(event, data)
