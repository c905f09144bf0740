# flycargo/bot/middleware/logging.py
"""
Middleware журнала действий в чате модераторов.
Решения по кнопкам раскладываются в extra (вид, id, регион), чтобы
по логам можно было восстановить, кто и что одобрил.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from flycargo.common.constants import TypeMsg
from flycargo.common.exceptions import InvalidArgumentError
from flycargo.common.logger import log_error, log_info
from flycargo.core.moderation.models import ModerationAction


def describe_event(event: TelegramObject) -> tuple[str, Dict[str, Any]]:
    """Краткое описание события и поля для extra."""
    extra: Dict[str, Any] = {"event_type": type(event).__name__}

    if isinstance(event, Message):
        extra["user_id"] = event.from_user.id if event.from_user else None
        extra["chat_id"] = event.chat.id if event.chat else None
        return (event.text or "[no text]")[:50], extra

    if isinstance(event, CallbackQuery):
        extra["user_id"] = event.from_user.id if event.from_user else None
        data = event.data or ""
        try:
            action = ModerationAction.parse(data)
        except InvalidArgumentError:
            return data or "[no data]", extra
        extra.update(
            verb=action.verb.value,
            kind=action.kind.value,
            entity_id=action.entity_id,
            region=action.region.value,
        )
        return data, extra

    return "", extra


class LoggingMiddleware(BaseMiddleware):
    """Пишет каждое событие бота и время его обработки."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        summary, extra = describe_event(event)
        await log_info(f"[{extra['event_type']}] {summary}", type_msg=TypeMsg.DEBUG, extra=extra)

        started = time.monotonic()
        try:
            result = await handler(event, data)
        except Exception as e:
            await log_error(f"Ошибка в хендлере модерации: {e}", extra=extra, exc_info=True)
            raise

        elapsed_ms = int((time.monotonic() - started) * 1000)
        await log_info(
            f"[{extra['event_type']}] обработано за {elapsed_ms} мс",
            type_msg=TypeMsg.DEBUG,
            extra=extra,
        )
        return result
