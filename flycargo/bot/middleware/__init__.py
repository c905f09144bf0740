# flycargo/bot/middleware/__init__.py
"""
Middleware для Telegram бота.
"""

from aiogram import Dispatcher

from flycargo.bot.middleware.logging import LoggingMiddleware
from flycargo.bot.middleware.moderators import ModeratorChatMiddleware


def register_middleware(dp: Dispatcher, moderator_chat_id: int) -> None:
    """
    Регистрирует все middleware в диспетчере.

    Args:
        dp: Диспетчер
        moderator_chat_id: ID чата модераторов
    """
    # Сначала логирование, потом фильтр чата
    dp.message.middleware(LoggingMiddleware())
    dp.callback_query.middleware(LoggingMiddleware())

    dp.message.middleware(ModeratorChatMiddleware(moderator_chat_id))
    dp.callback_query.middleware(ModeratorChatMiddleware(moderator_chat_id))


__all__ = [
    "register_middleware",
    "LoggingMiddleware",
    "ModeratorChatMiddleware",
]
